"""Dashboard read model: cached metrics, insights, alerts and widgets."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

import structlog

from src.domains.dashboard.core.widgets import (
    DEFAULT_WIDGET_IDS,
    ai_insights_content,
    alert_feed_content,
    competitive_activity_content,
    default_widgets,
    is_due,
    opportunity_score_content,
    review_sentiment_content,
    revenue_overview_content,
    threat_level_content,
)
from src.models.dashboard import DashboardOverview, WidgetData, WidgetType

if TYPE_CHECKING:
    from src.domains.alerts.services.alert_dispatcher import AlertDispatcher
    from src.domains.intelligence.services.metrics_aggregator import MetricsAggregator
    from src.domains.market_watch.services.market_watch import MarketWatchService
    from src.domains.reputation.services.reputation_service import ReputationService
    from src.models.dashboard import DashboardWidget
    from src.utils.clock import Clock

logger = structlog.get_logger(__name__)


class DashboardAssembler:
    """Serves dashboard snapshots from cached state and refreshes widgets on their intervals."""

    def __init__(
        self,
        metrics: MetricsAggregator,
        market_watch: MarketWatchService,
        reputation: ReputationService,
        alert_dispatcher: AlertDispatcher,
        clock: Clock,
    ) -> None:
        self.metrics = metrics
        self.market_watch = market_watch
        self.reputation = reputation
        self.alert_dispatcher = alert_dispatcher
        self.clock = clock
        self._widgets: dict[str, dict[str, DashboardWidget]] = {}
        self._preferences: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def set_user_widgets(self, user_id: str, widget_ids: list[str]) -> None:
        """Select and order the widgets a user sees. Unknown widget ids raise ValueError."""
        unknown = [widget_id for widget_id in widget_ids if widget_id not in DEFAULT_WIDGET_IDS]
        if unknown:
            msg = f"unknown widget ids: {', '.join(unknown)}"
            raise ValueError(msg)
        with self._lock:
            self._preferences[user_id] = list(widget_ids)

    def get_user_widgets(self, organization_id: str, user_id: str) -> list[DashboardWidget]:
        """The user's widgets in preference order; unknown users get the default layout."""
        widgets = self._organization_widgets(organization_id)
        with self._lock:
            selected = self._preferences.get(user_id, list(DEFAULT_WIDGET_IDS))
        return [widgets[widget_id] for widget_id in selected if widget_id in widgets]

    def get_dashboard_overview(self, organization_id: str, user_id: str) -> DashboardOverview:
        """Assemble the overview from cached values only; never raises for missing data."""
        return DashboardOverview(
            metrics=self.metrics.get_business_metrics(organization_id),
            insights=self.metrics.get_insights(organization_id),
            proprietary_metrics=self.metrics.get_proprietary_metrics(organization_id),
            widgets=self.get_user_widgets(organization_id, user_id),
            alerts=[
                alert
                for alert in self.alert_dispatcher.get_active_alerts()
                if alert.organization_id == organization_id
            ],
        )

    def refresh_widgets(self, organization_id: str, force: bool = False) -> list[str]:
        """Rebuild the data of every widget whose refresh interval has elapsed.

        Returns the ids of the refreshed widgets.
        """
        now = self.clock.now()
        refreshed = []
        for widget in self._organization_widgets(organization_id).values():
            if not force and not is_due(widget, now):
                continue
            content = self._build_content(organization_id, widget.widget_type)
            widget.data = WidgetData(kind=widget.data.kind, content=content)
            widget.last_updated_at = now
            refreshed.append(widget.id)

        if refreshed:
            logger.debug("widgets_refreshed", organization_id=organization_id, widgets=refreshed)
        return refreshed

    def _organization_widgets(self, organization_id: str) -> dict[str, DashboardWidget]:
        with self._lock:
            widgets = self._widgets.get(organization_id)
            if widgets is None:
                widgets = {widget.id: widget for widget in default_widgets()}
                self._widgets[organization_id] = widgets
            return widgets

    def _build_content(self, organization_id: str, widget_type: WidgetType) -> dict[str, Any]:
        metrics = self.metrics.get_business_metrics(organization_id)

        if widget_type == WidgetType.REVENUE_OVERVIEW:
            return revenue_overview_content(self.metrics.get_metrics_history(organization_id))
        if widget_type == WidgetType.COMPETITIVE_ACTIVITY:
            names = {entity.id: entity.name for entity in self.market_watch.get_competitors()}
            return competitive_activity_content(self.market_watch.get_recent_changes(10), names)
        if widget_type == WidgetType.REVIEW_SENTIMENT:
            return review_sentiment_content(
                [
                    review
                    for review in self.reputation.get_reviews()
                    if review.business_id == organization_id
                ]
            )
        if widget_type == WidgetType.THREAT_LEVEL:
            return threat_level_content(
                metrics, self.metrics.get_proprietary_metrics(organization_id)
            )
        if widget_type == WidgetType.OPPORTUNITY_SCORE:
            return opportunity_score_content(metrics, self.metrics.get_insights(organization_id))
        if widget_type == WidgetType.AI_INSIGHTS:
            return ai_insights_content(self.metrics.get_insights(organization_id))
        return alert_feed_content(
            [
                alert
                for alert in self.alert_dispatcher.get_active_alerts()
                if alert.organization_id == organization_id
            ]
        )
