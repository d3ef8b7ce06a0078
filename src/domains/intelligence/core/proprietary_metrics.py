"""Composite scores: revenue-at-risk, competitor threat rating and sentiment impact.

Each calculator returns a ScoreResult: the clamped score plus its weighted
factors. ``interpret`` turns a result into the wording shown on dashboards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.models.change import ChangeType, ImpactLevel
from src.models.proprietary_metric import Interpretation, MetricFactor, MetricTrend

if TYPE_CHECKING:
    from collections.abc import Iterable

    from src.models.business_metrics import (
        MarketData,
        OperationalMetrics,
        ReputationAggregate,
    )
    from src.models.change import Change

# Revenue-at-risk weights
COMPETITOR_RISK_WEIGHT = 0.40
REPUTATION_RISK_WEIGHT = 0.25
MARKET_RISK_WEIGHT = 0.20
OPERATIONAL_RISK_WEIGHT = 0.15

# Competitor threat weights
SHARE_GROWTH_WEIGHT = 0.30
PRICING_AGGRESSIVENESS_WEIGHT = 0.25
MARKETING_ACTIVITY_WEIGHT = 0.25
SERVICE_EXPANSION_WEIGHT = 0.20
ACTION_REQUIRED_THRESHOLD = 70

# Sentiment impact weights
SENTIMENT_WEIGHT = 0.4
RESPONSE_RATE_WEIGHT = 0.2
RESPONSE_QUALITY_WEIGHT = 0.2
SATISFACTION_WEIGHT = 0.2
DEFAULT_RESPONSE_QUALITY = 85.0

DEFAULT_CONFIDENCE = 85
TREND_THRESHOLD = 5.0


@dataclass
class ScoreResult:
    """Outcome of one composite calculation."""

    name: str
    value: float
    factors: list[MetricFactor] = field(default_factory=list)
    confidence: int | None = None
    action_required: bool = False


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_competitor_risk(changes: Iterable[Change]) -> float:
    """Weighted count of recent non-trivial changes, capped at 100."""
    counts = {ImpactLevel.CRITICAL: 0, ImpactLevel.HIGH: 0, ImpactLevel.MEDIUM: 0}
    for change in changes:
        if change.impact in counts:
            counts[change.impact] += 1
    risk = (
        counts[ImpactLevel.CRITICAL] * 25
        + counts[ImpactLevel.HIGH] * 15
        + counts[ImpactLevel.MEDIUM] * 8
    )
    return min(100.0, float(risk))


def calculate_reputation_risk(reputation: ReputationAggregate) -> float:
    """Risk grows as rating, sentiment and response rate fall below healthy levels."""
    rating_risk = max(0.0, (4 - reputation.average_rating) * 20)
    sentiment_risk = max(0.0, (50 - reputation.sentiment_score) * 0.5)
    response_risk = max(0.0, (80 - reputation.response_rate) * 0.3)
    return min(100.0, rating_risk + sentiment_risk + response_risk)


def calculate_market_risk(market: MarketData) -> float:
    return _clamp(market.volatility * 100, 0.0, 100.0)


def calculate_operational_risk(operational: OperationalMetrics) -> float:
    return _clamp(operational.error_rate * 100, 0.0, 100.0)


def calculate_revenue_at_risk(
    recent_changes: list[Change],
    reputation: ReputationAggregate,
    market: MarketData,
    operational: OperationalMetrics,
) -> ScoreResult:
    """Revenue-at-risk on a 0-100 scale; higher means more revenue exposed."""
    factors = [
        MetricFactor(
            name="Competitor Threats",
            value=calculate_competitor_risk(recent_changes),
            weight=COMPETITOR_RISK_WEIGHT,
        ),
        MetricFactor(
            name="Reputation Impact",
            value=calculate_reputation_risk(reputation),
            weight=REPUTATION_RISK_WEIGHT,
        ),
        MetricFactor(
            name="Market Changes",
            value=calculate_market_risk(market),
            weight=MARKET_RISK_WEIGHT,
        ),
        MetricFactor(
            name="Operational Issues",
            value=calculate_operational_risk(operational),
            weight=OPERATIONAL_RISK_WEIGHT,
        ),
    ]
    score = round(sum(factor.contribution for factor in factors))
    return ScoreResult(name="Revenue-at-Risk Score", value=_clamp(score, 0, 100), factors=factors)


def calculate_market_share_growth(current_share: float, previous_share: float) -> float:
    """Percentage growth in share; shrinking or unknown history counts as zero."""
    if previous_share <= 0:
        return 0.0
    return _clamp((current_share - previous_share) / previous_share * 100, 0.0, 100.0)


def calculate_pricing_aggressiveness(entity_changes: Iterable[Change]) -> float:
    price_cuts = sum(
        1
        for change in entity_changes
        if change.change_type == ChangeType.PRICING and change.delta < 0
    )
    return min(100.0, price_cuts * 20.0)


def calculate_marketing_activity(entity_changes: Iterable[Change]) -> float:
    """Social growth and review surges stand in for campaign activity."""
    score = 0.0
    for change in entity_changes:
        if change.change_type == ChangeType.SOCIAL_GROWTH:
            score += 10
        elif change.change_type == ChangeType.REVIEW_VOLUME:
            score += 5
    return min(100.0, score)


def calculate_service_expansion(entity_changes: Iterable[Change]) -> float:
    score = 0.0
    for change in entity_changes:
        if change.change_type != ChangeType.SERVICE:
            continue
        added = len(set(change.after or []) - set(change.before or []))
        score += added * 15
        if added:
            score += 10
    return min(100.0, score)


def calculate_competitor_threat_rating(
    entity_name: str,
    entity_changes: list[Change],
    market: MarketData,
) -> ScoreResult:
    """Per-competitor threat on a 0-100 scale; above 70 calls for action."""
    factors = [
        MetricFactor(
            name="Market Share Growth",
            value=calculate_market_share_growth(
                market.current_competitor_share, market.previous_competitor_share
            ),
            weight=SHARE_GROWTH_WEIGHT,
        ),
        MetricFactor(
            name="Pricing Aggressiveness",
            value=calculate_pricing_aggressiveness(entity_changes),
            weight=PRICING_AGGRESSIVENESS_WEIGHT,
        ),
        MetricFactor(
            name="Marketing Activity",
            value=calculate_marketing_activity(entity_changes),
            weight=MARKETING_ACTIVITY_WEIGHT,
        ),
        MetricFactor(
            name="Service Expansion",
            value=calculate_service_expansion(entity_changes),
            weight=SERVICE_EXPANSION_WEIGHT,
        ),
    ]
    rating = _clamp(round(sum(factor.contribution for factor in factors)), 0, 100)
    return ScoreResult(
        name=f"Competitor Threat Rating: {entity_name}",
        value=rating,
        factors=factors,
        action_required=rating > ACTION_REQUIRED_THRESHOLD,
    )


def calculate_sentiment_impact(
    reputation: ReputationAggregate,
    satisfaction: float,
    response_quality: float | None = None,
) -> ScoreResult:
    """Sentiment impact on a -100..100 scale.

    Average rating maps 1-5 stars onto -100..100 (0 when there are no
    reviews) and satisfaction maps a 1-10 score onto -80..100.
    """
    normalized_sentiment = (
        (reputation.average_rating - 3) * 50 if reputation.total_reviews else 0.0
    )
    quality = DEFAULT_RESPONSE_QUALITY if response_quality is None else response_quality
    factors = [
        MetricFactor(name="Review Sentiment", value=normalized_sentiment, weight=SENTIMENT_WEIGHT),
        MetricFactor(
            name="Response Rate", value=reputation.response_rate, weight=RESPONSE_RATE_WEIGHT
        ),
        MetricFactor(name="Response Quality", value=quality, weight=RESPONSE_QUALITY_WEIGHT),
        MetricFactor(
            name="Customer Satisfaction",
            value=(satisfaction - 5) * 20,
            weight=SATISFACTION_WEIGHT,
        ),
    ]
    score = round(sum(factor.contribution for factor in factors))
    return ScoreResult(name="Sentiment Impact Score", value=_clamp(score, -100, 100), factors=factors)


def calculate_trend(current: float, previous: float | None) -> MetricTrend:
    if previous is None:
        return MetricTrend.STABLE
    change = current - previous
    if change > TREND_THRESHOLD:
        return MetricTrend.UP
    if change < -TREND_THRESHOLD:
        return MetricTrend.DOWN
    return MetricTrend.STABLE


def _meaning(name: str, score: float) -> str:
    if "Revenue-at-Risk" in name:
        if score > 80:
            return "High revenue risk - immediate action required"
        if score > 60:
            return "Moderate revenue risk - monitor closely"
        if score > 40:
            return "Low revenue risk - maintain current strategies"
        return "Very low revenue risk - excellent position"

    if "Threat" in name:
        if score > 80:
            return "High competitive threat - defensive action needed"
        if score > 60:
            return "Moderate threat - monitor competitor activities"
        if score > 40:
            return "Low threat - maintain competitive advantage"
        return "Minimal threat - strong market position"

    strength = "strong" if score > 70 else "moderate" if score > 40 else "weak"
    return f"Score of {score:g} indicates {strength} performance"


def _implications(score: float) -> list[str]:
    if score > 80:
        return [
            "Immediate action required",
            "High priority for management attention",
            "Potential significant business impact",
        ]
    if score > 60:
        return ["Monitor closely", "Consider preventive measures", "Regular review recommended"]
    if score > 40:
        return [
            "Maintain current strategies",
            "Regular monitoring sufficient",
            "Opportunity for optimization",
        ]
    return ["Excellent performance", "Continue current approach", "Share best practices"]


def interpret(result: ScoreResult) -> Interpretation:
    """Band a score into meaning and implications (>80, >60, >40, else)."""
    return Interpretation(
        meaning=_meaning(result.name, result.value),
        implications=_implications(result.value),
        confidence=result.confidence if result.confidence is not None else DEFAULT_CONFIDENCE,
    )


def risk_recommendations(score: float) -> list[str]:
    """Short action list attached to the revenue-at-risk score."""
    if score > 80:
        return [
            "CRITICAL: Immediate action required to protect revenue",
            "Conduct emergency competitive analysis",
            "Review pricing strategy immediately",
        ]
    if score > 60:
        return ["HIGH RISK: Monitor competitors closely", "Consider defensive marketing strategies"]
    if score > 40:
        return ["MODERATE RISK: Regular monitoring recommended"]
    return ["LOW RISK: Maintain current strategies"]
