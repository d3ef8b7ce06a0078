"""Z-score anomaly detection over the metrics history."""

from __future__ import annotations

from statistics import mean, pstdev
from typing import TYPE_CHECKING

from src.models.change import ExpectedImpact, Priority, Recommendation
from src.models.insight import InsightCategory, InsightType, IntelligenceInsight
from src.utils.ids import new_id

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from src.models.business_metrics import BusinessMetrics

MIN_HISTORY = 5
REVENUE_Z_THRESHOLD = 2.5
SATISFACTION_Z_THRESHOLD = 2.0
REVIEW_VOLUME_Z_THRESHOLD = 2.5


def z_score(current: float, history: list[float]) -> float | None:
    """Signed z-score of ``current`` against ``history``.

    None when history is too short or has no spread.
    """
    if len(history) < MIN_HISTORY:
        return None
    deviation = pstdev(history)
    if deviation == 0:
        return None
    return (current - mean(history)) / deviation


def _series(
    history: list[BusinessMetrics], field: Callable[[BusinessMetrics], float]
) -> list[float]:
    return [float(field(snapshot)) for snapshot in history]


def revenue_anomaly(
    current: BusinessMetrics, history: list[BusinessMetrics], now: datetime
) -> IntelligenceInsight | None:
    values = _series(history, lambda snapshot: snapshot.revenue.total)
    score = z_score(current.revenue.total, values)
    if score is None or abs(score) <= REVENUE_Z_THRESHOLD:
        return None

    average = mean(values)
    higher = current.revenue.total > average
    confidence = int(min(95, abs(score) * 20))
    return IntelligenceInsight(
        id=new_id("ins"),
        organization_id=current.organization_id,
        insight_type=InsightType.ANOMALY,
        category=InsightCategory.REVENUE,
        title="Revenue Anomaly Detected",
        description=(
            f"Revenue is {'significantly higher' if higher else 'significantly lower'} "
            "than historical average."
        ),
        priority=Priority.MEDIUM if higher else Priority.HIGH,
        confidence=confidence,
        evidence=[
            {
                "type": "revenue_anomaly",
                "current": current.revenue.total,
                "average": average,
                "z_score": round(score, 3),
            }
        ],
        recommendations=[
            Recommendation(
                id=new_id("rec"),
                type="investigation",
                title="Investigate Revenue Anomaly",
                description="Analyze causes of unusual revenue pattern",
                priority=Priority.LOW if higher else Priority.HIGH,
                expected_impact=ExpectedImpact(timeframe="1 week"),
                timeline="1 week",
                success_metrics=[
                    "Root cause identified",
                    "Action plan created",
                    "Monitoring improved",
                ],
            )
        ],
        created_at=now,
    )


def satisfaction_anomaly(
    current: BusinessMetrics, history: list[BusinessMetrics], now: datetime
) -> IntelligenceInsight | None:
    values = _series(history, lambda snapshot: snapshot.customers.satisfaction)
    score = z_score(current.customers.satisfaction, values)
    if score is None or score >= -SATISFACTION_Z_THRESHOLD:
        return None

    return IntelligenceInsight(
        id=new_id("ins"),
        organization_id=current.organization_id,
        insight_type=InsightType.ANOMALY,
        category=InsightCategory.CUSTOMER,
        title="Customer Satisfaction Drop Detected",
        description="Customer satisfaction has dropped significantly below historical average.",
        priority=Priority.HIGH,
        confidence=int(min(90, abs(score) * 25)),
        evidence=[
            {
                "type": "satisfaction_anomaly",
                "current": current.customers.satisfaction,
                "average": mean(values),
                "z_score": round(score, 3),
            }
        ],
        recommendations=[
            Recommendation(
                id=new_id("rec"),
                type="reputation_improvement",
                title="Implement Satisfaction Recovery Plan",
                description="Address causes of satisfaction decline and implement improvements",
                priority=Priority.HIGH,
                expected_impact=ExpectedImpact(
                    revenue=1500, customers=15, reputation=5, timeframe="2-4 weeks"
                ),
                timeline="2 weeks",
                success_metrics=["Satisfaction recovery", "Complaint reduction"],
            )
        ],
        created_at=now,
    )


def review_volume_anomaly(
    current: BusinessMetrics, history: list[BusinessMetrics], now: datetime
) -> IntelligenceInsight | None:
    values = _series(history, lambda snapshot: snapshot.reputation.total_reviews)
    score = z_score(current.reputation.total_reviews, values)
    if score is None or score >= -REVIEW_VOLUME_Z_THRESHOLD:
        return None

    return IntelligenceInsight(
        id=new_id("ins"),
        organization_id=current.organization_id,
        insight_type=InsightType.ANOMALY,
        category=InsightCategory.REPUTATION,
        title="Review Volume Drop Detected",
        description="Review volume is significantly below its historical average.",
        priority=Priority.MEDIUM,
        confidence=int(min(90, abs(score) * 20)),
        evidence=[
            {
                "type": "review_volume_anomaly",
                "current": current.reputation.total_reviews,
                "average": mean(values),
                "z_score": round(score, 3),
            }
        ],
        recommendations=[
            Recommendation(
                id=new_id("rec"),
                type="marketing_response",
                title="Encourage Customer Reviews",
                description="Ask recent customers for reviews to restore review flow",
                expected_impact=ExpectedImpact(reputation=3, timeframe="2-4 weeks"),
                timeline="2 weeks",
                success_metrics=["Review volume increase"],
            )
        ],
        created_at=now,
    )


def detect_anomalies(
    current: BusinessMetrics, history: list[BusinessMetrics], now: datetime
) -> list[IntelligenceInsight]:
    """Compare the current snapshot against prior snapshots (excluding itself)."""
    detectors = (revenue_anomaly, satisfaction_anomaly, review_volume_anomaly)
    anomalies = [detector(current, history, now) for detector in detectors]
    return [anomaly for anomaly in anomalies if anomaly is not None]
