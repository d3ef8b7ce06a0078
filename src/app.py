"""Wires repositories, services and scheduled loops into one application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from src.domains.alerts.repositories.alert_repository import AlertRepository
from src.domains.alerts.services.alert_dispatcher import AlertDispatcher
from src.domains.dashboard.services.dashboard_assembler import DashboardAssembler
from src.domains.intelligence.repositories.metrics_repository import MetricsRepository
from src.domains.intelligence.services.metrics_aggregator import MetricsAggregator
from src.domains.market_watch.repositories.change_log import ChangeLog
from src.domains.market_watch.repositories.entity_repository import EntityRepository
from src.domains.market_watch.repositories.snapshot_repository import SnapshotRepository
from src.domains.market_watch.services.market_watch import MarketWatchService
from src.domains.reputation.repositories.review_repository import ReviewRepository
from src.domains.reputation.services.reputation_service import ReputationService
from src.services.json_sources import StaticBusinessDataProvider
from src.services.llm_client import AnthropicResponseGenerator
from src.services.notification_sinks import LoggingNotificationSink, WebhookNotificationSink
from src.services.scheduler import MonitoringScheduler
from src.services.template_generator import TemplateResponseGenerator
from src.utils.clock import SystemClock

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.models.config import Config
    from src.services.protocols import (
        BusinessDataProvider,
        NotificationSink,
        ResponseGenerator,
        ReviewSource,
        SourceFetcher,
    )
    from src.utils.clock import Clock

logger = structlog.get_logger(__name__)


@dataclass
class Application:
    config: Config
    clock: Clock
    market_watch: MarketWatchService
    alerts: AlertDispatcher
    reputation: ReputationService
    metrics: MetricsAggregator
    dashboard: DashboardAssembler
    scheduler: MonitoringScheduler

    @property
    def organization_id(self) -> str:
        return self.config.organization_id

    def scan_cycle(self) -> None:
        self.market_watch.scan_all()
        self.alerts.escalate_stale_alerts()

    def run_once(self) -> None:
        """Run every loop once, in dependency order."""
        self.scheduler.run_all()

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        self.market_watch.shutdown()


def default_generator(config: Config) -> ResponseGenerator:
    """Anthropic-backed generator when enabled and keyed, otherwise templates."""
    if config.llm_responses_enabled and config.anthropic_api_key:
        return AnthropicResponseGenerator(config.anthropic_api_key, config.llm_model)
    if config.llm_responses_enabled:
        logger.warning("llm_responses_disabled", reason="anthropic_api_key not set")
    return TemplateResponseGenerator()


def default_sinks(config: Config) -> tuple[list[NotificationSink], list[NotificationSink]]:
    """Standard and escalation sinks: always a log sink, plus webhooks when configured."""
    sinks: list[NotificationSink] = [LoggingNotificationSink("standard")]
    escalation_sinks: list[NotificationSink] = [LoggingNotificationSink("escalation")]
    if config.notification_webhook_url:
        sinks.append(
            WebhookNotificationSink(
                config.notification_webhook_url, timeout=config.notification_timeout_seconds
            )
        )
    if config.escalation_webhook_url:
        escalation_sinks.append(
            WebhookNotificationSink(
                config.escalation_webhook_url, timeout=config.notification_timeout_seconds
            )
        )
    return sinks, escalation_sinks


def build_application(
    config: Config,
    fetcher: SourceFetcher,
    review_source: ReviewSource,
    generator: ResponseGenerator | None = None,
    sinks: Sequence[NotificationSink] | None = None,
    escalation_sinks: Sequence[NotificationSink] | None = None,
    clock: Clock | None = None,
    business_data: BusinessDataProvider | None = None,
) -> Application:
    clock = clock or SystemClock()
    if sinks is None or escalation_sinks is None:
        default_standard, default_escalation = default_sinks(config)
        sinks = default_standard if sinks is None else sinks
        escalation_sinks = default_escalation if escalation_sinks is None else escalation_sinks

    alerts = AlertDispatcher(
        AlertRepository(),
        clock,
        config.organization_id,
        sinks=sinks,
        escalation_sinks=escalation_sinks,
    )
    market_watch = MarketWatchService(
        EntityRepository(),
        SnapshotRepository(),
        ChangeLog(),
        fetcher,
        alerts,
        clock,
        fetch_timeout_seconds=config.fetch_timeout_seconds,
        threat_window_days=config.threat_window_days,
    )
    reputation = ReputationService(
        ReviewRepository(),
        review_source,
        generator or default_generator(config),
        alerts,
        clock,
        positive_response_percent=config.positive_response_percent,
    )
    metrics = MetricsAggregator(
        MetricsRepository(history_limit=config.metrics_history_limit),
        market_watch,
        reputation,
        business_data or StaticBusinessDataProvider(),
        clock,
        recent_change_window=config.recent_change_window,
    )
    dashboard = DashboardAssembler(metrics, market_watch, reputation, alerts, clock)
    scheduler = MonitoringScheduler(clock)

    app = Application(
        config=config,
        clock=clock,
        market_watch=market_watch,
        alerts=alerts,
        reputation=reputation,
        metrics=metrics,
        dashboard=dashboard,
        scheduler=scheduler,
    )

    org = config.organization_id
    scheduler.add_job("entity_scan", config.scan_interval_seconds, app.scan_cycle)
    scheduler.add_job("review_cycle", config.review_sync_interval_seconds, reputation.run_cycle)
    scheduler.add_job(
        "metrics_refresh", config.metrics_interval_seconds, lambda: metrics.refresh_metrics(org)
    )
    scheduler.add_job(
        "intelligence_refresh",
        config.insight_interval_seconds,
        lambda: metrics.refresh_intelligence(org),
    )
    scheduler.add_job(
        "widget_refresh",
        config.widget_refresh_interval_seconds,
        lambda: dashboard.refresh_widgets(org),
    )
    scheduler.add_job(
        "alert_digests", config.digest_check_interval_seconds, alerts.send_due_digests
    )
    if config.alert_digest_frequency:
        alerts.create_digest_schedule(config.alert_digest_frequency)
    return app
