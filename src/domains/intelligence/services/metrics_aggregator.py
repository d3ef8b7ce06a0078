"""Scheduled metric refresh and the proprietary metric / insight pass."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.domains.intelligence.core.anomaly_detection import detect_anomalies
from src.domains.intelligence.core.business_metrics import (
    build_business_metrics,
    build_competitive_aggregate,
)
from src.domains.intelligence.core.insights import generate_insights, sort_by_priority
from src.domains.intelligence.core.proprietary_metrics import (
    ScoreResult,
    calculate_competitor_threat_rating,
    calculate_revenue_at_risk,
    calculate_sentiment_impact,
    calculate_trend,
    interpret,
    risk_recommendations,
)
from src.models.business_metrics import BusinessMetrics
from src.models.change import Priority, Recommendation
from src.models.proprietary_metric import MetricCategory, ProprietaryMetric
from src.utils.ids import new_id

if TYPE_CHECKING:
    from src.domains.intelligence.repositories.metrics_repository import MetricsRepository
    from src.domains.market_watch.services.market_watch import MarketWatchService
    from src.domains.reputation.services.reputation_service import ReputationService
    from src.models.insight import IntelligenceInsight
    from src.services.protocols import BusinessDataProvider
    from src.utils.clock import Clock

logger = structlog.get_logger(__name__)


class MetricsAggregator:
    """Combines business data, competitor changes and reviews into cached metrics.

    Reads always serve the cached values, which may be one cycle stale.
    """

    def __init__(
        self,
        metrics_repo: MetricsRepository,
        market_watch: MarketWatchService,
        reputation: ReputationService,
        business_data: BusinessDataProvider,
        clock: Clock,
        recent_change_window: int = 50,
    ) -> None:
        self.metrics_repo = metrics_repo
        self.market_watch = market_watch
        self.reputation = reputation
        self.business_data = business_data
        self.clock = clock
        self.recent_change_window = recent_change_window

    def refresh_metrics(self, organization_id: str) -> BusinessMetrics:
        """Recompute and record a BusinessMetrics snapshot."""
        market = self.business_data.market(organization_id)
        competitive = build_competitive_aggregate(
            market,
            self.market_watch.get_competitors(),
            list(self.market_watch.get_latest_ratings().values()),
        )
        metrics = build_business_metrics(
            metrics_id=new_id("met"),
            organization_id=organization_id,
            revenue=self.business_data.revenue(organization_id),
            customers=self.business_data.customers(organization_id),
            operational=self.business_data.operational(organization_id),
            reputation=self.reputation.get_reputation_metrics(organization_id),
            competitive=competitive,
            calculated_at=self.clock.now(),
        )
        self.metrics_repo.append_metrics(metrics)
        logger.info(
            "metrics_refreshed",
            organization_id=organization_id,
            average_rating=round(metrics.reputation.average_rating, 2),
            threat_level=str(metrics.competitive.threat_level),
        )
        return metrics

    def refresh_intelligence(self, organization_id: str) -> dict[str, int]:
        """Hourly pass: proprietary metrics, then insights and anomalies."""
        proprietary = self.calculate_proprietary_metrics(organization_id)
        insights = self.generate_insights(organization_id)
        return {"proprietary_metrics": len(proprietary), "insights": len(insights)}

    def calculate_proprietary_metrics(self, organization_id: str) -> list[ProprietaryMetric]:
        metrics = self._current_metrics(organization_id)
        market = self.business_data.market(organization_id)
        recent_changes = self.market_watch.get_recent_changes(self.recent_change_window)

        revenue_risk = calculate_revenue_at_risk(
            recent_changes, metrics.reputation, market, metrics.operational
        )
        results = [
            self._store(
                key=f"revenue-risk:{organization_id}",
                organization_id=organization_id,
                category=MetricCategory.REVENUE,
                result=revenue_risk,
                recommendations=self._text_recommendations(
                    risk_recommendations(revenue_risk.value)
                ),
            )
        ]

        for competitor in self.market_watch.get_competitors():
            if not competitor.is_active:
                continue
            entity_changes = [
                change for change in recent_changes if change.entity_id == competitor.id
            ]
            threat = calculate_competitor_threat_rating(competitor.name, entity_changes, market)
            recommendations = []
            if threat.action_required:
                recommendations = self._text_recommendations(
                    [f"Prepare a defensive response to {competitor.name}"]
                )
            results.append(
                self._store(
                    key=f"threat:{competitor.id}",
                    organization_id=organization_id,
                    category=MetricCategory.COMPETITIVE,
                    result=threat,
                    recommendations=recommendations,
                )
            )

        sentiment = calculate_sentiment_impact(
            metrics.reputation,
            metrics.customers.satisfaction,
            self.reputation.get_response_quality(),
        )
        results.append(
            self._store(
                key=f"sentiment:{organization_id}",
                organization_id=organization_id,
                category=MetricCategory.REPUTATION,
                result=sentiment,
            )
        )

        logger.info(
            "proprietary_metrics_calculated",
            organization_id=organization_id,
            count=len(results),
            revenue_at_risk=revenue_risk.value,
        )
        return results

    def generate_insights(self, organization_id: str) -> list[IntelligenceInsight]:
        """Replace the organization's insights with a fresh set, anomalies included."""
        history = self.metrics_repo.metrics_history(organization_id)
        metrics = self._current_metrics(organization_id)
        now = self.clock.now()

        insights = generate_insights(
            metrics,
            self.market_watch.get_recent_changes(self.recent_change_window),
            [
                review
                for review in self.reputation.get_reviews()
                if review.business_id == organization_id
            ],
            now,
        )
        prior = [snapshot for snapshot in history if snapshot.id != metrics.id]
        insights.extend(detect_anomalies(metrics, prior, now))
        insights = sort_by_priority(insights)

        self.metrics_repo.replace_insights(organization_id, insights)
        logger.info("insights_generated", organization_id=organization_id, count=len(insights))
        return insights

    def get_business_metrics(self, organization_id: str) -> BusinessMetrics:
        """Latest cached snapshot, or zeroed metrics when none was calculated."""
        latest = self.metrics_repo.latest_metrics(organization_id)
        if latest is None:
            return BusinessMetrics.empty(organization_id, self.clock.now())
        return latest

    def get_metrics_history(self, organization_id: str) -> list[BusinessMetrics]:
        return self.metrics_repo.metrics_history(organization_id)

    def get_insights(self, organization_id: str) -> list[IntelligenceInsight]:
        return self.metrics_repo.list_insights(organization_id)

    def get_proprietary_metrics(self, organization_id: str) -> list[ProprietaryMetric]:
        return self.metrics_repo.list_proprietary(organization_id)

    def _current_metrics(self, organization_id: str) -> BusinessMetrics:
        latest = self.metrics_repo.latest_metrics(organization_id)
        if latest is None:
            latest = self.refresh_metrics(organization_id)
        return latest

    def _store(
        self,
        key: str,
        organization_id: str,
        category: MetricCategory,
        result: ScoreResult,
        recommendations: list[Recommendation] | None = None,
    ) -> ProprietaryMetric:
        previous = self.metrics_repo.get_proprietary(key)
        metric = ProprietaryMetric(
            id=new_id("pm"),
            key=key,
            organization_id=organization_id,
            name=result.name,
            category=category,
            value=result.value,
            trend=calculate_trend(result.value, previous.value if previous else None),
            interpretation=interpret(result),
            recommendations=recommendations or [],
            factors=result.factors,
            last_calculated_at=self.clock.now(),
        )
        self.metrics_repo.put_proprietary(metric)
        return metric

    def _text_recommendations(self, lines: list[str]) -> list[Recommendation]:
        return [
            Recommendation(
                id=new_id("rec"),
                type="risk_mitigation",
                title=line,
                description=line,
                priority=Priority.HIGH if index == 0 else Priority.MEDIUM,
            )
            for index, line in enumerate(lines)
        ]
