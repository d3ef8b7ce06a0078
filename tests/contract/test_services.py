"""Contract tests for the domain services.

Real in-memory repositories; collaborators outside the service under test are
MagicMocks or the stub capabilities from conftest.
"""

from __future__ import annotations

import json
import threading
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
import requests
from structlog.testing import capture_logs

from src.core.errors import FetchError, InvalidStateError, NotFoundError, ResponseGenerationError
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
from src.models.alert import AlertSeverity, AlertStatus, AlertType
from src.models.business_metrics import BusinessMetrics
from src.models.change import ChangeStatus, ChangeType, ImpactLevel
from src.models.review import (
    ResponseFeedback,
    ResponseTone,
    ReputationMetrics,
    ReviewStatus,
    Sentiment,
)
from src.models.source_snapshot import SourceSnapshot
from src.models.tracked_entity import DataSource, ThreatLevel, TrackedEntity
from src.services.json_sources import (
    JsonReviewSource,
    JsonSourceFetcher,
    StaticBusinessDataProvider,
    load_competitors,
    load_review_profiles,
)
from src.services.llm_client import AnthropicResponseGenerator
from src.services.notification_sinks import LoggingNotificationSink, WebhookNotificationSink
from src.services.template_generator import TemplateResponseGenerator

if TYPE_CHECKING:
    from pathlib import Path

START = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def dispatcher_mock() -> MagicMock:
    return MagicMock()


@pytest.fixture
def market_watch(fetcher, clock, dispatcher_mock) -> MarketWatchService:
    service = MarketWatchService(
        EntityRepository(),
        SnapshotRepository(),
        ChangeLog(),
        fetcher,
        dispatcher_mock,
        clock,
        fetch_timeout_seconds=2.0,
    )
    yield service
    service.shutdown()


@pytest.fixture
def alerts(clock, sink, escalation_sink) -> AlertDispatcher:
    return AlertDispatcher(
        AlertRepository(),
        clock,
        "org-1",
        sinks=[sink],
        escalation_sinks=[escalation_sink],
    )


@pytest.fixture
def reputation(review_source, clock, dispatcher_mock) -> ReputationService:
    return ReputationService(
        ReviewRepository(),
        review_source,
        TemplateResponseGenerator(),
        dispatcher_mock,
        clock,
    )


def _scan_pizza_co(market_watch, fetcher, pizza_co, **attributes) -> dict:
    fetcher.set("pizza-co", "google", **attributes)
    if not market_watch.get_competitors():
        market_watch.add_entity(pizza_co)
    return market_watch.scan_all()


# ---------------------------------------------------------------------------
# 1. MarketWatchService
# ---------------------------------------------------------------------------


class TestMarketWatchService:
    """Tests for scanning, change recording and threat tracking."""

    def test_register_entity(self, market_watch, clock) -> None:
        entity = market_watch.register_entity("Burger Hut", ["google", "yelp"], category="Food")

        assert entity.id.startswith("ent_")
        assert entity.sources == {DataSource.GOOGLE, DataSource.YELP}
        assert entity.category == "food"
        assert entity.created_at == clock.now()
        assert market_watch.get_competitors() == [entity]

    def test_first_scan_establishes_baseline(
        self, market_watch, fetcher, pizza_co, dispatcher_mock, clock
    ) -> None:
        stats = _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=2)

        assert stats["successful"] == 1
        assert stats["changes_detected"] == 0
        assert market_watch.get_recent_changes() == []
        dispatcher_mock.dispatch_for_change.assert_not_called()
        assert pizza_co.last_scanned_at == clock.now()
        assert market_watch.snapshot_repo.get_latest("pizza-co", DataSource.GOOGLE) is not None

    def test_price_jump_recorded_and_dispatched(
        self, market_watch, fetcher, pizza_co, dispatcher_mock
    ) -> None:
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=2)
        stats = _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=4)

        changes = market_watch.get_recent_changes()
        assert stats["changes_detected"] == 1
        assert len(changes) == 1
        assert changes[0].change_type == ChangeType.PRICING
        assert changes[0].impact == ImpactLevel.HIGH
        dispatcher_mock.dispatch_for_change.assert_called_once_with(
            changes[0], entity_name="Pizza Co"
        )
        assert pizza_co.threat_level == ThreatLevel.MEDIUM

    def test_rescanning_unchanged_data_is_idempotent(
        self, market_watch, fetcher, pizza_co
    ) -> None:
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=2)
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=4)
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=4)
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=4)

        assert len(market_watch.change_log) == 1

    def test_fetch_failure_skips_entity_only(self, market_watch, fetcher, pizza_co) -> None:
        market_watch.add_entity(pizza_co)
        burger_hut = market_watch.register_entity("Burger Hut", ["yelp"], entity_id="burger-hut")
        fetcher.set("pizza-co", "google", price_level=2)
        fetcher.set("burger-hut", "yelp", rating=4.0)
        market_watch.scan_all()

        fetcher.update("pizza-co", "google", price_level=4)
        fetcher.fail("pizza-co", "google")
        fetcher.update("burger-hut", "yelp", rating=3.5)

        with capture_logs() as logs:
            stats = market_watch.scan_all()

        assert stats["failed"] == 1
        assert stats["successful"] == 1
        assert pizza_co.is_active
        baseline = market_watch.snapshot_repo.get_latest("pizza-co", DataSource.GOOGLE)
        assert baseline.numeric("price_level") == 2
        assert [change.entity_id for change in market_watch.get_recent_changes()] == [burger_hut.id]
        failures = [log for log in logs if log["event"] == "entity_scan_failed"]
        assert failures[0]["entity_id"] == "pizza-co"

    def test_slow_source_times_out(self, clock, pizza_co) -> None:
        release = threading.Event()

        class SlowFetcher:
            def fetch(self, entity: TrackedEntity, source: DataSource) -> SourceSnapshot:
                release.wait(5)
                raise FetchError(str(source), entity.id, "released")

        service = MarketWatchService(
            EntityRepository(),
            SnapshotRepository(),
            ChangeLog(),
            SlowFetcher(),
            MagicMock(),
            clock,
            fetch_timeout_seconds=0.05,
        )
        service.add_entity(pizza_co)
        try:
            stats = service.scan_all()
        finally:
            release.set()
            service.shutdown()

        assert stats["failed"] == 1
        assert "timed out" in stats["errors"][0]

    def test_hung_source_does_not_starve_other_entities(self, clock, fetcher) -> None:
        release = threading.Event()

        class HangingFetcher:
            def fetch(self, entity: TrackedEntity, source: DataSource) -> SourceSnapshot:
                if entity.id == "stuck":
                    release.wait(10)
                    raise FetchError(str(source), entity.id, "released")
                return fetcher.fetch(entity, source)

        service = MarketWatchService(
            EntityRepository(),
            SnapshotRepository(),
            ChangeLog(),
            HangingFetcher(),
            MagicMock(),
            clock,
            fetch_timeout_seconds=0.5,
        )
        service.register_entity("Stuck Diner", ["google"], entity_id="stuck")
        service.register_entity("Healthy Cafe", ["google"], entity_id="healthy")
        fetcher.set("healthy", "google", rating=4.0)

        try:
            results = [service.scan_all() for _ in range(12)]
        finally:
            release.set()
            service.shutdown()

        assert [stats["successful"] for stats in results] == [1] * 12
        assert [stats["failed"] for stats in results] == [1] * 12
        assert "timed out" in results[0]["errors"][0]
        assert "previous fetch still running" in results[1]["errors"][0]

    def test_mismatched_snapshot_rejected(self, clock, pizza_co) -> None:
        fetcher = MagicMock()
        fetcher.fetch.return_value = SourceSnapshot(entity_id="other", source=DataSource.GOOGLE)
        service = MarketWatchService(
            EntityRepository(), SnapshotRepository(), ChangeLog(), fetcher, MagicMock(), clock
        )
        service.add_entity(pizza_co)

        with pytest.raises(FetchError, match="snapshot does not match request"):
            service.scan_entity(pizza_co)
        service.shutdown()

    def test_deactivated_entity_not_scanned(self, market_watch, fetcher, pizza_co) -> None:
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=2)
        calls = fetcher.calls

        market_watch.deactivate_entity("pizza-co")
        stats = market_watch.scan_all()

        assert fetcher.calls == calls
        assert stats["processed"] == 0
        assert market_watch.get_competitors() == [pizza_co]
        assert market_watch.reactivate_entity("pizza-co").is_active

    def test_threat_ages_out(self, market_watch, fetcher, pizza_co, clock) -> None:
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=1)
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=3)
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=1)
        assert pizza_co.threat_level == ThreatLevel.HIGH

        clock.advance(days=7)
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=1)

        assert pizza_co.threat_level == ThreatLevel.LOW

    def test_change_status_workflow(self, market_watch, fetcher, pizza_co) -> None:
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=2)
        _scan_pizza_co(market_watch, fetcher, pizza_co, price_level=4)
        change = market_watch.get_recent_changes()[0]

        assert market_watch.acknowledge_change(change.id).status == ChangeStatus.ACKNOWLEDGED
        assert market_watch.resolve_change(change.id).status == ChangeStatus.RESOLVED
        with pytest.raises(InvalidStateError):
            market_watch.acknowledge_change(change.id)
        with pytest.raises(NotFoundError):
            market_watch.resolve_change("chg_missing")

    def test_latest_ratings_average_sources(self, market_watch, fetcher, pizza_co) -> None:
        pizza_co.sources = {DataSource.GOOGLE, DataSource.YELP}
        fetcher.set("pizza-co", "yelp", rating=4.4)
        _scan_pizza_co(market_watch, fetcher, pizza_co, rating=4.0)

        assert market_watch.get_latest_ratings() == {"pizza-co": pytest.approx(4.2)}


# ---------------------------------------------------------------------------
# 2. AlertDispatcher
# ---------------------------------------------------------------------------


class TestAlertDispatcher:
    """Tests for alert creation, fan-out and escalation."""

    def test_medium_change_not_alerted(self, alerts, make_change, sink) -> None:
        assert alerts.dispatch_for_change(make_change(impact=ImpactLevel.MEDIUM)) is None
        assert sink.alerts == []

    def test_high_change_raises_warning(self, alerts, make_change, sink, escalation_sink) -> None:
        change = make_change(impact=ImpactLevel.HIGH)

        alert = alerts.dispatch_for_change(change, entity_name="Pizza Co")

        assert alert.severity == AlertSeverity.WARNING
        assert alert.alert_type == AlertType.COMPETITOR_ACTIVITY
        assert alert.escalation_level == 1
        assert alert.source_change_id == change.id
        assert alert.title == "Competitor activity: Pizza Co"
        assert sink.alerts == [alert]
        assert escalation_sink.alerts == []

    def test_critical_change_goes_to_escalation_sink(
        self, alerts, make_change, escalation_sink
    ) -> None:
        alert = alerts.dispatch_for_change(make_change(impact=ImpactLevel.CRITICAL))

        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.escalation_level == 2
        assert escalation_sink.alerts == [alert]

    def test_one_alert_per_change(self, alerts, make_change, sink) -> None:
        change = make_change()
        first = alerts.dispatch_for_change(change)
        second = alerts.dispatch_for_change(change)

        assert first is second
        assert len(sink.alerts) == 1

    def test_failing_sink_is_logged_not_raised(
        self, clock, make_change, failing_sink, sink
    ) -> None:
        dispatcher = AlertDispatcher(
            AlertRepository(), clock, "org-1", sinks=[failing_sink, sink]
        )

        with capture_logs() as logs:
            alert = dispatcher.dispatch_for_change(make_change())

        assert sink.alerts == [alert]
        assert dispatcher.get_active_alerts() == [alert]
        assert any(log["event"] == "notification_failed" for log in logs)

    def test_very_negative_review_alert(self, alerts, make_review) -> None:
        review = make_review(rating=1, sentiment=Sentiment.VERY_NEGATIVE, content="Terrible")

        alert = alerts.dispatch_for_review(review)

        assert alert.alert_type == AlertType.NEGATIVE_REVIEW
        assert alert.severity == AlertSeverity.WARNING
        assert alert.source_review_id == review.id
        negative = make_review(rating=2, sentiment=Sentiment.NEGATIVE)
        assert alerts.dispatch_for_review(negative) is None

    def test_acknowledge_and_resolve(self, alerts, make_change, clock) -> None:
        alert = alerts.dispatch_for_change(make_change())

        alerts.acknowledge_alert(alert.id, "ops@example.com")
        assert alert.status == AlertStatus.ACKNOWLEDGED
        assert alert.acknowledged_at == clock.now()
        with pytest.raises(InvalidStateError):
            alerts.acknowledge_alert(alert.id, "ops@example.com")

        alerts.resolve_alert(alert.id, "ops@example.com", resolution="Matched price")
        assert alert.resolution == "Matched price"
        assert alerts.get_active_alerts() == []
        with pytest.raises(InvalidStateError):
            alerts.resolve_alert(alert.id, "ops@example.com")
        with pytest.raises(NotFoundError):
            alerts.acknowledge_alert("alt_missing", "ops@example.com")

    def test_stale_alerts_escalate_up_to_max(
        self, alerts, make_change, clock, escalation_sink
    ) -> None:
        alert = alerts.dispatch_for_change(make_change())
        assert alerts.escalate_stale_alerts() == []

        clock.advance(hours=6)
        assert alerts.escalate_stale_alerts() == [alert]
        assert alert.escalation_level == 2
        assert alert.last_escalated_at == clock.now()
        assert alerts.escalate_stale_alerts() == []

        clock.advance(hours=6)
        alerts.escalate_stale_alerts()
        clock.advance(hours=6)
        alerts.escalate_stale_alerts()

        assert alert.escalation_level == 3
        assert len(escalation_sink.alerts) == 2

    def test_acknowledged_alerts_do_not_escalate(self, alerts, make_change, clock) -> None:
        alert = alerts.dispatch_for_change(make_change())
        alerts.acknowledge_alert(alert.id, "ops@example.com")

        clock.advance(days=1)

        assert alerts.escalate_stale_alerts() == []

    def test_alerts_by_severity(self, alerts, make_change) -> None:
        warning = alerts.dispatch_for_change(make_change(impact=ImpactLevel.HIGH))
        critical = alerts.dispatch_for_change(make_change(impact=ImpactLevel.CRITICAL))
        alerts.resolve_alert(warning.id, "ops@example.com")

        assert alerts.get_alerts_by_severity("warning") == [warning]
        assert alerts.get_alerts_by_severity(AlertSeverity.CRITICAL) == [critical]
        assert alerts.get_alerts_by_severity(AlertSeverity.INFO) == []

    def test_digest_waits_for_its_period(self, alerts, make_change, clock, sink) -> None:
        schedule = alerts.create_digest_schedule("daily")
        alerts.dispatch_for_change(make_change())

        clock.advance(hours=23)

        assert schedule.next_send_at == START + timedelta(days=1)
        assert alerts.send_due_digests() == []
        assert sink.digests == []

    def test_daily_digest_sends_filtered_alerts_to_standard_sinks(
        self, alerts, make_change, make_review, clock, sink, escalation_sink
    ) -> None:
        schedule = alerts.create_digest_schedule(
            "daily", alert_types=[AlertType.COMPETITOR_ACTIVITY]
        )
        clock.advance(hours=1)
        alert = alerts.dispatch_for_change(make_change(), entity_name="Pizza Co")
        alerts.dispatch_for_review(make_review(rating=1, sentiment=Sentiment.VERY_NEGATIVE))
        clock.advance(hours=23)

        digests = alerts.send_due_digests()

        assert sink.digests == digests
        assert escalation_sink.digests == []
        digest = digests[0]
        assert digest.alert_ids == [alert.id]
        assert digest.period_start == clock.now() - timedelta(days=7)
        assert digest.period_end == clock.now()
        assert digest.severity_counts["warning"] == 1
        assert "## COMPETITOR ACTIVITY (1)" in digest.content
        assert "- Competitor activity: Pizza Co" in digest.content
        assert "NEGATIVE REVIEW" not in digest.content
        assert schedule.last_sent_at == clock.now()
        assert schedule.next_send_at == clock.now() + timedelta(days=1)

    def test_next_digest_covers_only_new_alerts(self, alerts, make_change, clock) -> None:
        alerts.create_digest_schedule("daily")
        alerts.dispatch_for_change(make_change())
        clock.advance(days=1)
        alerts.send_due_digests()

        clock.advance(hours=2)
        newer = alerts.dispatch_for_change(make_change())
        clock.advance(hours=22)
        digests = alerts.send_due_digests()

        assert [digest.alert_ids for digest in digests] == [[newer.id]]

    def test_empty_period_sends_nothing_but_advances(self, alerts, clock, sink) -> None:
        schedule = alerts.create_digest_schedule("weekly")
        clock.advance(days=7)

        with capture_logs() as logs:
            assert alerts.send_due_digests() == []

        assert sink.digests == []
        assert schedule.next_send_at == clock.now() + timedelta(days=7)
        assert any(log["event"] == "digest_skipped" for log in logs)

    def test_digest_severity_and_competitor_filters(self, alerts, make_change, clock) -> None:
        alerts.create_digest_schedule(
            "weekly", severities=["critical"], entity_ids=["burger-hut"]
        )
        alerts.dispatch_for_change(make_change(impact=ImpactLevel.CRITICAL))
        wanted = alerts.dispatch_for_change(
            make_change(entity_id="burger-hut", impact=ImpactLevel.CRITICAL)
        )
        alerts.dispatch_for_change(make_change(entity_id="burger-hut", impact=ImpactLevel.HIGH))
        clock.advance(days=7)

        digests = alerts.send_due_digests()

        assert digests[0].alert_ids == [wanted.id]
        assert digests[0].severity_counts["critical"] == 1

    def test_deactivated_schedule_never_sends(self, alerts, make_change, clock, sink) -> None:
        schedule = alerts.create_digest_schedule("daily")
        alerts.dispatch_for_change(make_change())

        alerts.deactivate_digest_schedule(schedule.id)
        clock.advance(days=2)

        assert alerts.send_due_digests() == []
        assert sink.digests == []
        with pytest.raises(NotFoundError):
            alerts.deactivate_digest_schedule("dig_missing")

    def test_failing_sink_does_not_block_digest(
        self, clock, make_change, failing_sink, sink
    ) -> None:
        dispatcher = AlertDispatcher(
            AlertRepository(), clock, "org-1", sinks=[failing_sink, sink]
        )
        dispatcher.create_digest_schedule("daily")
        dispatcher.dispatch_for_change(make_change())
        clock.advance(days=1)

        with capture_logs() as logs:
            digests = dispatcher.send_due_digests()

        assert sink.digests == digests
        failures = [log for log in logs if log["event"] == "notification_failed"]
        assert failures[-1]["schedule_id"] == digests[0].schedule_id

    def test_unknown_digest_frequency_rejected(self, alerts) -> None:
        with pytest.raises(ValueError, match="monthly"):
            alerts.create_digest_schedule("monthly")


# ---------------------------------------------------------------------------
# 3. ReputationService
# ---------------------------------------------------------------------------


class TestReputationService:
    """Tests for review intake and the response workflow."""

    def _ingest(self, reputation, review_source, clock, **fields):
        profile = reputation.add_profile("org-1", "google", profile_id="prf-1")
        review_source.add(
            "prf-1", external_id=fields.pop("external_id", "r1"), published_at=START, **fields
        )
        reputation.sync_reviews()
        return profile

    def test_sync_classifies_and_alerts(
        self, reputation, review_source, clock, dispatcher_mock
    ) -> None:
        self._ingest(reputation, review_source, clock, rating=1, content="The pizza was terrible")

        review = reputation.get_reviews()[0]
        assert review.sentiment == Sentiment.VERY_NEGATIVE
        assert review.status == ReviewStatus.NEW
        assert review.business_id == "org-1"
        dispatcher_mock.dispatch_for_review.assert_called_once_with(review)

    def test_sync_is_deduplicated(self, reputation, review_source, clock) -> None:
        profile = self._ingest(reputation, review_source, clock, rating=5, content="Amazing")
        profile.last_synced_at = None

        stats = reputation.sync_reviews()

        assert stats["reviews_ingested"] == 0
        assert len(reputation.get_reviews()) == 1

    def test_failing_profile_is_isolated(self, reputation, review_source) -> None:
        reputation.add_profile("org-1", "google", profile_id="prf-1")
        reputation.add_profile("org-1", "yelp", profile_id="prf-2")
        review_source.failing.add("prf-1")
        review_source.add("prf-2", external_id="y1", rating=4, published_at=START)

        stats = reputation.sync_reviews()

        assert stats["failed"] == 1
        assert stats["successful"] == 1
        assert [review.external_id for review in reputation.get_reviews()] == ["y1"]

    def test_pipeline_drafts_for_negative_and_skips_very_positive(
        self, reputation, review_source, clock
    ) -> None:
        reputation.add_profile("org-1", "google", profile_id="prf-1")
        review_source.add("prf-1", external_id="bad", content="Terrible", published_at=START)
        review_source.add(
            "prf-1", external_id="great", content="Amazing, best pizza", published_at=START
        )
        reputation.sync_reviews()

        stats = reputation.process_pending_responses()

        by_external = {review.external_id: review for review in reputation.get_reviews()}
        assert stats["successful"] == 1
        assert stats["skipped"] == 1
        assert by_external["bad"].status == ReviewStatus.AI_RESPONDED
        assert by_external["bad"].ai_response.tone == ResponseTone.APOLOGETIC
        assert 70 <= by_external["bad"].ai_response.confidence <= 100
        assert by_external["great"].status == ReviewStatus.NEW
        assert by_external["great"].ai_response is None

    def test_generator_failure_leaves_review_untouched(
        self, review_source, clock, dispatcher_mock
    ) -> None:
        generator = MagicMock()
        generator.generate.side_effect = ResponseGenerationError("model unavailable")
        service = ReputationService(
            ReviewRepository(), review_source, generator, dispatcher_mock, clock
        )
        service.add_profile("org-1", "google", profile_id="prf-1")
        review_source.add("prf-1", external_id="r1", content="Terrible", published_at=START)
        service.sync_reviews()

        stats = service.process_pending_responses()

        review = service.get_reviews()[0]
        assert stats["failed"] == 1
        assert review.status == ReviewStatus.NEW
        assert review.ai_response is None
        assert service.review_repo.list_responses() == []

    def test_unexpected_generator_error_is_wrapped(
        self, review_source, clock, dispatcher_mock
    ) -> None:
        generator = MagicMock()
        generator.generate.side_effect = RuntimeError("boom")
        service = ReputationService(
            ReviewRepository(), review_source, generator, dispatcher_mock, clock
        )
        service.add_profile("org-1", "google", profile_id="prf-1")
        review_source.add("prf-1", external_id="r1", content="Terrible", published_at=START)
        service.sync_reviews()

        with pytest.raises(ResponseGenerationError, match="boom"):
            service.generate_ai_response(service.get_reviews()[0].id)

    def test_approve_sends_response(self, reputation, review_source, clock) -> None:
        self._ingest(reputation, review_source, clock, content="Terrible")
        review = reputation.get_reviews()[0]
        response = reputation.generate_ai_response(review.id)

        clock.advance(hours=3)
        approved = reputation.approve_ai_response(response.id, "manager")

        assert approved.status == ReviewStatus.RESPONDED
        assert approved.business_response == response.content
        assert response.sent_at == clock.now()
        assert reputation.get_reputation_metrics("org-1").response_time_hours == 3.0
        assert reputation.get_response_quality() == response.confidence
        with pytest.raises(InvalidStateError):
            reputation.approve_ai_response(response.id, "manager")

    def test_reject_round_trip(self, reputation, review_source, clock) -> None:
        self._ingest(reputation, review_source, clock, content="Terrible")
        review = reputation.get_reviews()[0]
        response = reputation.generate_ai_response(review.id)

        rejected = reputation.reject_ai_response(
            response.id,
            ResponseFeedback(reason="Too generic", suggested_content="Call us"),
            "manager",
        )

        assert rejected.status == ReviewStatus.NEW
        assert rejected.ai_response is None
        stored = reputation.review_repo.get_response(response.id)
        assert stored.feedback.reason == "Too generic"
        assert stored.rejected_by == "manager"
        assert review in reputation.get_reviews_needing_response()
        with pytest.raises(InvalidStateError):
            reputation.approve_ai_response(response.id, "manager")

        redraft = reputation.generate_ai_response(review.id, tone=ResponseTone.EXPLANATORY)
        assert redraft.id != response.id
        assert review.status == ReviewStatus.AI_RESPONDED

    def test_generate_requires_new_review(self, reputation, review_source, clock) -> None:
        self._ingest(reputation, review_source, clock, content="Terrible")
        review = reputation.get_reviews()[0]
        reputation.generate_ai_response(review.id)

        with pytest.raises(InvalidStateError):
            reputation.generate_ai_response(review.id)
        with pytest.raises(InvalidStateError):
            reputation.record_human_response(review.id, "Sorry", "owner")

    def test_human_response(self, reputation, review_source, clock) -> None:
        self._ingest(reputation, review_source, clock, rating=5, content="Amazing")
        review = reputation.get_reviews()[0]

        reputation.record_human_response(review.id, "  Thank you!  ", "owner")

        assert review.status == ReviewStatus.RESPONDED
        assert review.business_response == "Thank you!"
        assert reputation.get_reviews_needing_response() == []
        with pytest.raises(NotFoundError):
            reputation.record_human_response("rev_missing", "Hi", "owner")

    def test_reads(self, reputation, review_source, clock) -> None:
        reputation.add_profile("org-1", "google", profile_id="prf-1")
        review_source.add("prf-1", external_id="a", rating=1, content="awful", published_at=START)
        review_source.add("prf-1", external_id="b", rating=5, content="", published_at=START)
        reputation.sync_reviews()

        metrics = reputation.get_reputation_metrics("org-1")

        assert metrics.total_reviews == 2
        assert metrics.average_rating == 3.0
        assert len(reputation.get_reviews_by_sentiment(Sentiment.VERY_NEGATIVE)) == 1
        assert reputation.get_reputation_metrics("org-2").total_reviews == 0
        assert reputation.get_response_quality() is None


# ---------------------------------------------------------------------------
# 4. MetricsAggregator
# ---------------------------------------------------------------------------


@pytest.fixture
def aggregator(clock, make_change, pizza_co) -> MetricsAggregator:
    market_watch = MagicMock()
    market_watch.get_competitors.return_value = [pizza_co]
    market_watch.get_latest_ratings.return_value = {"pizza-co": 4.5}
    market_watch.get_recent_changes.return_value = [make_change(before=2, after=4, delta=2)]
    reputation = MagicMock()
    reputation.get_reputation_metrics.return_value = ReputationMetrics()
    reputation.get_reviews.return_value = []
    reputation.get_response_quality.return_value = None
    return MetricsAggregator(
        MetricsRepository(), market_watch, reputation, StaticBusinessDataProvider(), clock
    )


class TestMetricsAggregator:
    """Tests for metric refresh, proprietary metrics and insights."""

    def test_empty_metrics_before_first_refresh(self, aggregator) -> None:
        metrics = aggregator.get_business_metrics("org-1")
        assert metrics.id == ""
        assert metrics.revenue.total == 0.0

    def test_refresh_metrics(self, aggregator) -> None:
        metrics = aggregator.refresh_metrics("org-1")

        assert metrics.competitive.competitive_position == 0.5
        assert metrics.competitive.opportunities == 2
        assert metrics.customers.satisfaction == 8.2
        assert aggregator.get_business_metrics("org-1") is metrics
        assert aggregator.get_metrics_history("org-1") == [metrics]

    def test_proprietary_metrics_overwrite_by_key(self, aggregator, clock) -> None:
        aggregator.calculate_proprietary_metrics("org-1")
        clock.advance(hours=1)
        aggregator.calculate_proprietary_metrics("org-1")

        metrics = aggregator.get_proprietary_metrics("org-1")
        assert {metric.key for metric in metrics} == {
            "revenue-risk:org-1",
            "threat:pizza-co",
            "sentiment:org-1",
        }
        assert all(metric.last_calculated_at == clock.now() for metric in metrics)
        # computing without cached metrics triggered one refresh
        assert len(aggregator.get_metrics_history("org-1")) == 1

    def test_insights_replaced_each_pass(self, aggregator) -> None:
        first = aggregator.generate_insights("org-1")
        second = aggregator.generate_insights("org-1")

        assert [insight.title for insight in first] == ["Pricing Optimization Opportunity"]
        assert aggregator.get_insights("org-1") == second

    def test_refresh_intelligence(self, aggregator) -> None:
        assert aggregator.refresh_intelligence("org-1") == {
            "proprietary_metrics": 3,
            "insights": 1,
        }


# ---------------------------------------------------------------------------
# 5. DashboardAssembler
# ---------------------------------------------------------------------------


@pytest.fixture
def dashboard(clock) -> DashboardAssembler:
    metrics = MagicMock()
    metrics.get_business_metrics.return_value = BusinessMetrics.empty("org-1", START)
    metrics.get_insights.return_value = []
    metrics.get_proprietary_metrics.return_value = []
    metrics.get_metrics_history.return_value = []
    market_watch = MagicMock()
    market_watch.get_competitors.return_value = []
    market_watch.get_recent_changes.return_value = []
    reputation = MagicMock()
    reputation.get_reviews.return_value = []
    alerts = MagicMock()
    alerts.get_active_alerts.return_value = []
    return DashboardAssembler(metrics, market_watch, reputation, alerts, clock)


class TestDashboardAssembler:
    """Tests for widget preferences and scheduled refresh."""

    def test_unknown_user_gets_default_layout(self, dashboard) -> None:
        overview = dashboard.get_dashboard_overview("org-1", "someone")

        assert len(overview.widgets) == 7
        assert overview.metrics.organization_id == "org-1"
        assert overview.alerts == []

    def test_user_preferences_select_and_order(self, dashboard) -> None:
        dashboard.set_user_widgets("ana", ["alert-feed", "threat-level"])

        widgets = dashboard.get_user_widgets("org-1", "ana")

        assert [widget.id for widget in widgets] == ["alert-feed", "threat-level"]

    def test_unknown_widget_rejected(self, dashboard) -> None:
        with pytest.raises(ValueError, match="unknown widget ids: stock-ticker"):
            dashboard.set_user_widgets("ana", ["stock-ticker"])

    def test_refresh_only_due_widgets(self, dashboard, clock) -> None:
        assert len(dashboard.refresh_widgets("org-1")) == 7
        assert dashboard.refresh_widgets("org-1") == []

        clock.advance(seconds=60)
        assert dashboard.refresh_widgets("org-1") == ["alert-feed"]

        clock.advance(seconds=240)
        assert sorted(dashboard.refresh_widgets("org-1")) == [
            "ai-insights",
            "alert-feed",
            "revenue-overview",
            "review-sentiment",
        ]
        assert len(dashboard.refresh_widgets("org-1", force=True)) == 7

    def test_refreshed_widget_has_content(self, dashboard, clock) -> None:
        dashboard.refresh_widgets("org-1")
        widget = dashboard.get_user_widgets("org-1", "ana")[3]

        assert widget.id == "threat-level"
        assert widget.data.content["value"] == 0
        assert widget.last_updated_at == clock.now()


# ---------------------------------------------------------------------------
# 6. Shipped capability implementations
# ---------------------------------------------------------------------------


class TestTemplateResponseGenerator:
    """Tests for the deterministic canned-reply generator."""

    def test_deterministic(self) -> None:
        generator = TemplateResponseGenerator()
        first = generator.generate("Terrible", 1, ResponseTone.APOLOGETIC)
        second = generator.generate("Terrible", 1, ResponseTone.APOLOGETIC)

        assert first == second
        assert 70 <= first.confidence <= 100
        assert "apologetic" in first.reasoning


class TestJsonSources:
    """Tests for the JSON data-file capabilities."""

    @pytest.fixture
    def data_file(self, tmp_path: Path) -> Path:
        path = tmp_path / "data.json"
        path.write_text(
            json.dumps(
                {
                    "organization": {"market": {"own_rating": 4.6}},
                    "competitors": [
                        {"id": "pizza-co", "name": "Pizza Co", "sources": ["google"]}
                    ],
                    "snapshots": {"pizza-co": {"google": {"price_level": 2, "rating": 4.2}}},
                    "review_profiles": [
                        {"id": "gp-1", "business_id": "org-1", "platform": "google"}
                    ],
                    "reviews": {
                        "gp-1": [
                            {
                                "external_id": "r1",
                                "rating": 1,
                                "content": "terrible",
                                "published_at": "2024-06-01T10:00:00Z",
                            },
                            {
                                "external_id": "bad",
                                "rating": 9,
                                "published_at": "2024-06-01T10:00:00Z",
                            },
                        ]
                    },
                }
            )
        )
        return path

    def test_loaders(self, data_file, clock) -> None:
        competitors = load_competitors(data_file, clock)
        profiles = load_review_profiles(data_file, clock)

        assert [entity.id for entity in competitors] == ["pizza-co"]
        assert competitors[0].sources == {DataSource.GOOGLE}
        assert profiles[0].platform == "google"

    def test_fetcher(self, data_file, clock) -> None:
        fetcher = JsonSourceFetcher(data_file, clock)
        entity = load_competitors(data_file, clock)[0]

        snapshot = fetcher.fetch(entity, DataSource.GOOGLE)

        assert snapshot.numeric("price_level") == 2
        assert snapshot.captured_at == clock.now()
        with pytest.raises(FetchError, match="no data for source"):
            fetcher.fetch(entity, DataSource.YELP)

    def test_missing_file_is_fetch_error(self, tmp_path, clock) -> None:
        fetcher = JsonSourceFetcher(tmp_path / "missing.json", clock)
        with pytest.raises(FetchError):
            fetcher.fetch(TrackedEntity(id="x", name="X"), DataSource.GOOGLE)

    def test_review_source_skips_invalid_payloads(self, data_file, clock) -> None:
        source = JsonReviewSource(data_file)
        profile = load_review_profiles(data_file, clock)[0]

        payloads = source.fetch_reviews(profile, None)

        assert [payload.external_id for payload in payloads] == ["r1"]
        assert source.fetch_reviews(profile, START) == []

    def test_review_source_compares_naive_timestamps_as_utc(self, tmp_path, clock) -> None:
        path = tmp_path / "data.json"
        path.write_text(
            json.dumps(
                {
                    "review_profiles": [
                        {"id": "gp-1", "business_id": "org-1", "platform": "google"}
                    ],
                    "reviews": {
                        "gp-1": [
                            {"external_id": "old", "published_at": "2024-06-01T11:00:00"},
                            {"external_id": "new", "published_at": "2024-06-01T13:00:00"},
                        ]
                    },
                }
            )
        )
        profile = load_review_profiles(path, clock)[0]

        payloads = JsonReviewSource(path).fetch_reviews(profile, START)

        assert [payload.external_id for payload in payloads] == ["new"]
        assert payloads[0].published_at.tzinfo is UTC

    def test_business_data_overrides(self, data_file) -> None:
        provider = StaticBusinessDataProvider(data_file)
        assert provider.market("org-1").own_rating == 4.6
        assert provider.market("org-1").market_share == 15.0
        assert StaticBusinessDataProvider().customers("org-1").satisfaction == 8.2


class TestLoggingNotificationSink:
    """Tests for the structured-log sink."""

    def test_logs_alerts_and_digests(self, make_change, clock) -> None:
        dispatcher = AlertDispatcher(
            AlertRepository(), clock, "org-1", sinks=[LoggingNotificationSink("standard")]
        )
        schedule = dispatcher.create_digest_schedule("daily")

        with capture_logs() as logs:
            alert = dispatcher.dispatch_for_change(make_change())
            clock.advance(days=1)
            dispatcher.send_due_digests()

        by_event = {log["event"]: log for log in logs}
        assert by_event["alert_notification"]["alert_id"] == alert.id
        assert by_event["alert_notification"]["channel"] == "standard"
        assert by_event["alert_digest_notification"]["schedule_id"] == schedule.id
        assert by_event["alert_digest_notification"]["alert_count"] == 1


class TestWebhookNotificationSink:
    """Tests for the webhook sink."""

    def test_posts_alert_json(self, alerts, make_change) -> None:
        alert = alerts.dispatch_for_change(make_change())
        session = MagicMock()
        session.headers = {}
        session.post.return_value.status_code = 200

        WebhookNotificationSink("https://hooks.example.com/a", timeout=3, session=session).notify(
            alert
        )

        _, kwargs = session.post.call_args
        assert session.post.call_args.args[0] == "https://hooks.example.com/a"
        assert kwargs["timeout"] == 3
        assert json.loads(kwargs["data"])["id"] == alert.id

    def test_http_error_propagates(self, alerts, make_change) -> None:
        alert = alerts.dispatch_for_change(make_change())
        session = MagicMock()
        session.headers = {}
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("500")

        with pytest.raises(requests.HTTPError):
            WebhookNotificationSink("https://hooks.example.com/a", session=session).notify(alert)

    def test_posts_digest_json(self, make_change, clock) -> None:
        session = MagicMock()
        session.headers = {}
        session.post.return_value.status_code = 200
        dispatcher = AlertDispatcher(
            AlertRepository(),
            clock,
            "org-1",
            sinks=[WebhookNotificationSink("https://hooks.example.com/a", session=session)],
        )
        dispatcher.create_digest_schedule("daily")
        dispatcher.dispatch_for_change(make_change())
        clock.advance(days=1)

        digest = dispatcher.send_due_digests()[0]

        body = json.loads(session.post.call_args.kwargs["data"])
        assert body["schedule_id"] == digest.schedule_id
        assert body["content"] == digest.content


class TestAnthropicResponseGenerator:
    """Tests for the Anthropic-backed generator with a mocked client."""

    def _client(self, text: str) -> MagicMock:
        client = MagicMock()
        client.messages.create.return_value.content = [MagicMock(text=text)]
        return client

    def test_parses_fenced_json(self) -> None:
        text = '```json\n{"content": "We are sorry.", "confidence": 120, "reasoning": "r"}\n```'
        generator = AnthropicResponseGenerator("key", client=self._client(text))

        generated = generator.generate("Terrible", 1, ResponseTone.APOLOGETIC)

        assert generated.content == "We are sorry."
        assert generated.confidence == 100
        kwargs = generator.client.messages.create.call_args.kwargs
        assert "apologetic" in kwargs["messages"][0]["content"].lower()

    def test_unparseable_output(self) -> None:
        generator = AnthropicResponseGenerator("key", client=self._client("not json"))
        with pytest.raises(ResponseGenerationError, match="Failed to parse"):
            generator.generate("Terrible", 1, ResponseTone.APOLOGETIC)

    def test_empty_content_rejected(self) -> None:
        generator = AnthropicResponseGenerator(
            "key", client=self._client('{"content": "", "confidence": 80}')
        )
        with pytest.raises(ResponseGenerationError, match="Invalid response payload"):
            generator.generate("Terrible", 1, ResponseTone.APOLOGETIC)
