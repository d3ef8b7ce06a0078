"""Rule-based insight generation from metrics, changes and reviews."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from src.models.change import ChangeType, ExpectedImpact, Priority, Recommendation
from src.models.insight import InsightCategory, InsightType, IntelligenceInsight
from src.utils.ids import new_id

if TYPE_CHECKING:
    from datetime import datetime

    from src.models.business_metrics import BusinessMetrics
    from src.models.change import Change
    from src.models.review import Review

PRICING_INCREASE_THRESHOLD = 5.0
NEGATIVE_SHARE_THRESHOLD = 30.0
EFFICIENCY_THRESHOLD = 70.0
RECENT_REVIEW_WINDOW = timedelta(days=7)

_PRIORITY_ORDER = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


def _price_change_percent(change: Change) -> float:
    before = float(change.before or 0)
    if before <= 0:
        return 0.0
    return change.delta / before * 100


def pricing_opportunity(
    organization_id: str, changes: list[Change], now: datetime
) -> IntelligenceInsight | None:
    """Competitors raising prices on average by more than 5% opens room to raise yours."""
    pricing_changes = [change for change in changes if change.change_type == ChangeType.PRICING]
    if not pricing_changes:
        return None

    average_increase = sum(_price_change_percent(change) for change in pricing_changes) / len(
        pricing_changes
    )
    if average_increase <= PRICING_INCREASE_THRESHOLD:
        return None

    impact = ExpectedImpact(revenue=round(average_increase * 1000, 2), timeframe="2-4 weeks")
    return IntelligenceInsight(
        id=new_id("ins"),
        organization_id=organization_id,
        insight_type=InsightType.OPPORTUNITY,
        category=InsightCategory.REVENUE,
        title="Pricing Optimization Opportunity",
        description=(
            f"Competitors have increased prices by an average of {average_increase:.1f}%. "
            "Consider adjusting your pricing strategy."
        ),
        priority=Priority.HIGH,
        confidence=85,
        evidence=[
            {
                "type": "price_change",
                "change_id": change.id,
                "entity_id": change.entity_id,
                "source": str(change.source),
                "before": change.before,
                "after": change.after,
            }
            for change in pricing_changes
        ],
        recommendations=[
            Recommendation(
                id=new_id("rec"),
                type="price_adjustment",
                title="Analyze Pricing Strategy",
                description="Review competitor pricing changes and adjust your prices accordingly",
                priority=Priority.HIGH,
                expected_impact=impact,
                timeline="2 weeks",
                success_metrics=["Revenue increase", "Price competitiveness", "Customer retention"],
            )
        ],
        created_at=now,
    )


def service_expansion(
    organization_id: str, changes: list[Change], now: datetime
) -> IntelligenceInsight | None:
    launches = [
        change
        for change in changes
        if change.change_type == ChangeType.SERVICE
        and set(change.after or []) - set(change.before or [])
    ]
    if not launches:
        return None

    competitors = len({change.entity_id for change in launches})
    return IntelligenceInsight(
        id=new_id("ins"),
        organization_id=organization_id,
        insight_type=InsightType.THREAT,
        category=InsightCategory.COMPETITIVE,
        title="Competitor Service Expansion",
        description=(
            f"{competitors} competitor(s) launched new services. "
            "Monitor impact on your market position."
        ),
        priority=Priority.MEDIUM,
        confidence=75,
        evidence=[
            {
                "type": "service_launch",
                "change_id": change.id,
                "entity_id": change.entity_id,
                "added": sorted(set(change.after or []) - set(change.before or [])),
            }
            for change in launches
        ],
        recommendations=[
            Recommendation(
                id=new_id("rec"),
                type="competitive_action",
                title="Develop Competitive Response",
                description="Analyze new services and develop counter-strategy",
                priority=Priority.MEDIUM,
                expected_impact=ExpectedImpact(timeframe="1-2 months"),
                timeline="1 month",
                success_metrics=[
                    "Market position maintained",
                    "Customer retention",
                    "Revenue protected",
                ],
            )
        ],
        created_at=now,
    )


def negative_review_trend(
    organization_id: str, reviews: list[Review], now: datetime
) -> IntelligenceInsight | None:
    """More than 30% negative reviews over the last 7 days is a reputation threat."""
    recent = [review for review in reviews if review.published_at > now - RECENT_REVIEW_WINDOW]
    if not recent:
        return None

    negative = [review for review in recent if review.is_negative]
    share = len(negative) / len(recent) * 100
    if share <= NEGATIVE_SHARE_THRESHOLD:
        return None

    return IntelligenceInsight(
        id=new_id("ins"),
        organization_id=organization_id,
        insight_type=InsightType.THREAT,
        category=InsightCategory.REPUTATION,
        title="Negative Review Trend Detected",
        description=f"{share:.1f}% of recent reviews are negative. Immediate attention recommended.",
        priority=Priority.HIGH,
        confidence=90,
        evidence=[
            {
                "type": "negative_review",
                "review_id": review.id,
                "platform": str(review.platform),
                "rating": review.rating,
                "sentiment": str(review.sentiment),
            }
            for review in negative
        ],
        recommendations=[
            Recommendation(
                id=new_id("rec"),
                type="reputation_improvement",
                title="Implement Reputation Recovery Plan",
                description="Address negative reviews and improve customer satisfaction",
                priority=Priority.HIGH,
                expected_impact=ExpectedImpact(
                    revenue=2000, customers=15, reputation=8, timeframe="2-4 weeks"
                ),
                timeline="2 weeks",
                success_metrics=[
                    "Review sentiment improvement",
                    "Customer satisfaction",
                    "Response rate",
                ],
            )
        ],
        created_at=now,
    )


def operational_efficiency(
    organization_id: str, metrics: BusinessMetrics, now: datetime
) -> IntelligenceInsight | None:
    efficiency = metrics.operational.efficiency
    if efficiency >= EFFICIENCY_THRESHOLD:
        return None

    return IntelligenceInsight(
        id=new_id("ins"),
        organization_id=organization_id,
        insight_type=InsightType.OPTIMIZATION,
        category=InsightCategory.OPERATIONAL,
        title="Operational Efficiency Opportunity",
        description=(
            f"Current efficiency is {efficiency:g}%. "
            "Optimization could save costs and improve service."
        ),
        priority=Priority.MEDIUM,
        confidence=80,
        evidence=[{"type": "efficiency_metrics", **metrics.operational.model_dump()}],
        recommendations=[
            Recommendation(
                id=new_id("rec"),
                type="operational_change",
                title="Optimize Operations",
                description="Implement process improvements and automation",
                expected_impact=ExpectedImpact(
                    revenue=2000, operational=5000, timeframe="1-2 months"
                ),
                timeline="6 weeks",
                success_metrics=["Efficiency improvement", "Cost reduction", "Service quality"],
            )
        ],
        created_at=now,
    )


def sort_by_priority(insights: list[IntelligenceInsight]) -> list[IntelligenceInsight]:
    return sorted(insights, key=lambda insight: _PRIORITY_ORDER[insight.priority])


def generate_insights(
    metrics: BusinessMetrics,
    changes: list[Change],
    reviews: list[Review],
    now: datetime,
) -> list[IntelligenceInsight]:
    """Run every insight rule and return the hits, most urgent first."""
    organization_id = metrics.organization_id
    candidates = [
        pricing_opportunity(organization_id, changes, now),
        service_expansion(organization_id, changes, now),
        negative_review_trend(organization_id, reviews, now),
        operational_efficiency(organization_id, metrics, now),
    ]
    return sort_by_priority([insight for insight in candidates if insight is not None])
