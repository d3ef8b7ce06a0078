"""Rule-based reading of a change: what it means and what to do about it."""

from __future__ import annotations

from src.models.change import (
    ChangeAnalysis,
    ChangeType,
    ExpectedImpact,
    Priority,
    Recommendation,
)
from src.utils.ids import new_id

HIGH_RATING_THRESHOLD = 4.0
REVIEW_SURGE_THRESHOLD = 10
FOLLOWER_SURGE_THRESHOLD = 500


def analyze_change(
    change_type: ChangeType,
    entity_name: str,
    delta: float,
    source: str = "",
) -> ChangeAnalysis:
    """Describe the sentiment, topics and urgency of a change for the operator."""
    if change_type == ChangeType.PRICING:
        raised = delta > 0
        return ChangeAnalysis(
            sentiment="negative" if raised else "positive",
            key_topics=["pricing", "competition", "market_position"],
            urgency=Priority.HIGH if raised else Priority.MEDIUM,
            suggested_action=(
                "Consider matching or undercutting competitor price"
                if raised
                else "Monitor if competitor is engaging in price war"
            ),
            reasoning=f"Competitor {entity_name} changed price level by {delta:+g}",
        )

    if change_type == ChangeType.RATING:
        improved = delta > 0
        return ChangeAnalysis(
            sentiment="positive" if improved else "negative",
            key_topics=["service_quality", "customer_satisfaction", "reputation"],
            urgency=Priority.MEDIUM,
            suggested_action="Monitor competitor service improvements",
            reasoning=(
                f"Rating change indicates service quality {'improvement' if improved else 'decline'}"
            ),
        )

    if change_type == ChangeType.REVIEW_VOLUME:
        return ChangeAnalysis(
            sentiment="positive",
            key_topics=["customer_engagement", "marketing_activity", "service_quality"],
            urgency=Priority.LOW,
            suggested_action="Monitor competitor marketing and service strategies",
            reasoning="Increased review volume suggests active customer engagement",
        )

    if change_type == ChangeType.SOCIAL_GROWTH:
        return ChangeAnalysis(
            sentiment="positive",
            key_topics=["marketing", "brand_awareness", "customer_engagement"],
            urgency=Priority.HIGH if delta > FOLLOWER_SURGE_THRESHOLD else Priority.MEDIUM,
            suggested_action="Analyze competitor marketing strategy and consider similar tactics",
            reasoning=f"Significant {source or 'social'} growth indicates effective marketing strategy",
        )

    expanded = delta > 0
    return ChangeAnalysis(
        sentiment="negative" if expanded else "neutral",
        key_topics=["services", "competition", "market_position"],
        urgency=Priority.HIGH if delta >= 2 else Priority.MEDIUM,
        suggested_action=(
            "Review whether the new offerings overlap with yours"
            if expanded
            else "Check whether dropped offerings leave a gap you can fill"
        ),
        reasoning=f"{entity_name} changed the set of services it offers",
    )


def recommend_actions(
    change_type: ChangeType,
    entity_name: str,
    delta: float,
    after: float | None = None,
    source: str = "",
) -> list[Recommendation]:
    """Return follow-up recommendations; many changes warrant none."""
    if change_type == ChangeType.PRICING and delta > 0:
        return [
            Recommendation(
                id=new_id("rec"),
                type="price_adjustment",
                title="Consider Price Increase",
                description="Competitor increased prices - opportunity to raise your prices",
                expected_impact=ExpectedImpact(revenue=2000, timeframe="1-2 weeks"),
                timeline="1 week",
                success_metrics=["Revenue increase", "Price competitiveness", "Customer retention"],
            )
        ]

    if change_type == ChangeType.RATING and after is not None and after > HIGH_RATING_THRESHOLD:
        return [
            Recommendation(
                id=new_id("rec"),
                type="competitive_action",
                title="Analyze Service Improvements",
                description=f"{entity_name} has a high rating - analyze their service strategies",
                expected_impact=ExpectedImpact(
                    reputation=5, operational=1000, timeframe="2-4 weeks"
                ),
                timeline="2 weeks",
                success_metrics=[
                    "Service quality improvement",
                    "Customer satisfaction",
                    "Rating improvement",
                ],
            )
        ]

    if change_type == ChangeType.REVIEW_VOLUME and delta > REVIEW_SURGE_THRESHOLD:
        return [
            Recommendation(
                id=new_id("rec"),
                type="marketing_response",
                title="Increase Review Generation",
                description="Competitor is generating more reviews - increase your review efforts",
                expected_impact=ExpectedImpact(
                    revenue=1000,
                    customers=10,
                    reputation=3,
                    operational=500,
                    timeframe="2-6 weeks",
                ),
                timeline="2 weeks",
                success_metrics=["Review volume increase", "Review quality", "Customer engagement"],
            )
        ]

    if change_type == ChangeType.SOCIAL_GROWTH and delta > FOLLOWER_SURGE_THRESHOLD:
        return [
            Recommendation(
                id=new_id("rec"),
                type="marketing_response",
                title="Enhance Social Media Strategy",
                description=(
                    f"Competitor gained {delta:g} {source} followers - analyze their strategy"
                ),
                expected_impact=ExpectedImpact(
                    revenue=1500,
                    customers=20,
                    reputation=2,
                    operational=1000,
                    timeframe="4-8 weeks",
                ),
                timeline="3 weeks",
                success_metrics=["Follower growth", "Engagement rate", "Brand awareness"],
            )
        ]

    if change_type == ChangeType.SERVICE and delta > 0:
        return [
            Recommendation(
                id=new_id("rec"),
                type="competitive_action",
                title="Evaluate Service Expansion",
                description=f"{entity_name} added services - evaluate your service offering",
                priority=Priority.HIGH if delta >= 2 else Priority.MEDIUM,
                expected_impact=ExpectedImpact(revenue=3000, customers=15, timeframe="1-3 months"),
                timeline="1 month",
                success_metrics=["Service parity", "Customer retention"],
            )
        ]

    return []
