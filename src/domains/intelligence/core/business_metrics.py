"""Assembly of a BusinessMetrics snapshot from its component aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.domains.market_watch.core.threat import threat_from_count
from src.models.business_metrics import (
    BusinessMetrics,
    CompetitiveAggregate,
    MetricsPeriod,
    ReputationAggregate,
)
from src.models.tracked_entity import ThreatLevel

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from src.models.business_metrics import (
        CustomerMetrics,
        MarketData,
        OperationalMetrics,
        RevenueMetrics,
    )
    from src.models.review import ReputationMetrics
    from src.models.tracked_entity import TrackedEntity

LEADER_POSITION = 1.0
CHALLENGER_POSITION = 0.5
OPPORTUNITIES_PER_COMPETITOR = 2


def calculate_competitive_position(own_rating: float, competitor_ratings: list[float]) -> float:
    """1.0 when the organization out-rates the competitor average, else 0.5."""
    if not competitor_ratings:
        return LEADER_POSITION
    average = sum(competitor_ratings) / len(competitor_ratings)
    return LEADER_POSITION if own_rating > average else CHALLENGER_POSITION


def calculate_overall_threat(competitors: Iterable[TrackedEntity]) -> ThreatLevel:
    """Band the number of active high/critical competitors into a threat level."""
    threatening = sum(
        1
        for competitor in competitors
        if competitor.is_active
        and competitor.threat_level in (ThreatLevel.HIGH, ThreatLevel.CRITICAL)
    )
    return threat_from_count(threatening)


def build_competitive_aggregate(
    market: MarketData,
    competitors: list[TrackedEntity],
    competitor_ratings: list[float],
) -> CompetitiveAggregate:
    active = [competitor for competitor in competitors if competitor.is_active]
    return CompetitiveAggregate(
        market_share=market.market_share,
        competitive_position=calculate_competitive_position(market.own_rating, competitor_ratings),
        threat_level=calculate_overall_threat(active),
        opportunities=len(active) * OPPORTUNITIES_PER_COMPETITOR,
        pricing_advantage=market.pricing_advantage,
    )


def build_reputation_aggregate(reputation: ReputationMetrics) -> ReputationAggregate:
    return ReputationAggregate(
        average_rating=reputation.average_rating,
        total_reviews=reputation.total_reviews,
        response_rate=reputation.response_rate,
        sentiment_score=reputation.sentiment_score,
        response_time_hours=reputation.response_time_hours,
        trend=reputation.trend,
    )


def build_business_metrics(
    metrics_id: str,
    organization_id: str,
    revenue: RevenueMetrics,
    customers: CustomerMetrics,
    operational: OperationalMetrics,
    reputation: ReputationMetrics,
    competitive: CompetitiveAggregate,
    calculated_at: datetime,
    period: MetricsPeriod = MetricsPeriod.DAILY,
) -> BusinessMetrics:
    return BusinessMetrics(
        id=metrics_id,
        organization_id=organization_id,
        period=period,
        revenue=revenue,
        customers=customers,
        reputation=build_reputation_aggregate(reputation),
        competitive=competitive,
        operational=operational,
        calculated_at=calculated_at,
    )
