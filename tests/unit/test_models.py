"""Unit tests for pydantic models and their validators."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from src.models.alert import Alert, AlertSeverity, AlertStatus, AlertType
from src.models.config import Config
from src.models.review import AIResponse, GeneratedResponse, ResponseTone, ReviewPayload
from src.models.source_snapshot import SourceSnapshot
from src.models.tracked_entity import DataSource, ThreatLevel, TrackedEntity

START = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class TestTrackedEntity:
    """Tests for TrackedEntity validation."""

    def test_defaults(self) -> None:
        entity = TrackedEntity(id="pizza-co", name="Pizza Co")
        assert entity.threat_level == ThreatLevel.LOW
        assert entity.is_active
        assert entity.last_scanned_at is None
        assert entity.category == "general"

    def test_name_whitespace_collapsed(self) -> None:
        entity = TrackedEntity(id="pizza-co", name="  Pizza   Co ")
        assert entity.name == "Pizza Co"

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Name must not be empty"):
            TrackedEntity(id="pizza-co", name="   ")

    def test_category_lowercased(self) -> None:
        assert TrackedEntity(id="x", name="X", category=" Restaurant ").category == "restaurant"

    def test_sources_parsed(self) -> None:
        entity = TrackedEntity(id="x", name="X", sources=["google", "yelp"])
        assert entity.sources == {DataSource.GOOGLE, DataSource.YELP}

    def test_unknown_source_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TrackedEntity(id="x", name="X", sources=["myspace"])


class TestSourceSnapshot:
    """Tests for SourceSnapshot attribute handling."""

    def test_list_attributes_normalized(self) -> None:
        snapshot = SourceSnapshot(
            entity_id="x",
            source=DataSource.WEBSITE,
            attributes={"services": ["delivery ", "catering", "delivery", ""]},
        )
        assert snapshot.attributes["services"] == ["catering", "delivery"]
        assert snapshot.items("services") == {"catering", "delivery"}

    def test_numeric_accessor(self) -> None:
        snapshot = SourceSnapshot(
            entity_id="x",
            source=DataSource.GOOGLE,
            attributes={"rating": 4.2, "price_level": 2, "services": ["a"]},
        )
        assert snapshot.numeric("rating") == 4.2
        assert snapshot.numeric("price_level") == 2.0
        assert snapshot.numeric("services") is None
        assert snapshot.numeric("missing") is None
        assert snapshot.items("rating") is None

    def test_naive_capture_time_read_as_utc(self) -> None:
        snapshot = SourceSnapshot(
            entity_id="x", source=DataSource.GOOGLE, captured_at=datetime(2024, 6, 1, 12, 0)
        )
        assert snapshot.captured_at == START

    def test_snapshots_are_frozen(self) -> None:
        snapshot = SourceSnapshot(entity_id="x", source=DataSource.GOOGLE)
        with pytest.raises(ValidationError):
            snapshot.entity_id = "y"  # type: ignore[misc]


class TestReviewModels:
    """Tests for review payload and AI response validation."""

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_range(self, rating) -> None:
        with pytest.raises(ValidationError, match="rating must be between 1 and 5"):
            ReviewPayload(external_id="r1", rating=rating, published_at=START)

    def test_rating_optional_on_payload(self) -> None:
        assert ReviewPayload(external_id="r1", published_at=START).rating is None

    def test_payload_timestamps_normalized_to_utc(self) -> None:
        naive = ReviewPayload.model_validate(
            {"external_id": "r1", "published_at": "2023-12-31T10:00:00"}
        )
        offset = ReviewPayload.model_validate(
            {"external_id": "r2", "published_at": "2023-12-31T12:00:00+02:00"}
        )

        assert naive.published_at == datetime(2023, 12, 31, 10, 0, tzinfo=UTC)
        assert offset.published_at == datetime(2023, 12, 31, 10, 0, tzinfo=UTC)
        assert offset.published_at.tzinfo is UTC

    @pytest.mark.parametrize(("raw", "expected"), [(50, 70), (85, 85), (150, 100)])
    def test_generated_confidence_clamped(self, raw, expected) -> None:
        generated = GeneratedResponse(content=" Thanks! ", confidence=raw)
        assert generated.confidence == expected
        assert generated.content == "Thanks!"

    def test_generated_content_required(self) -> None:
        with pytest.raises(ValidationError, match="content must not be empty"):
            GeneratedResponse(content="  ", confidence=80)

    def test_ai_response_confidence_range(self) -> None:
        with pytest.raises(ValidationError, match="confidence must be between 70 and 100"):
            AIResponse(
                id="air-1",
                review_id="rev-1",
                tone=ResponseTone.APOLOGETIC,
                content="Sorry",
                confidence=60,
                generated_at=START,
            )


class TestAlert:
    """Tests for Alert validation."""

    def _alert(self, **overrides) -> Alert:
        fields = {
            "id": "alt-1",
            "organization_id": "org-1",
            "alert_type": AlertType.NEGATIVE_REVIEW,
            "severity": AlertSeverity.WARNING,
            "title": "1-star review on google",
            "message": "Anonymous: terrible",
            "created_at": START,
        }
        fields.update(overrides)
        return Alert(**fields)

    def test_active_statuses(self) -> None:
        assert self._alert().is_active
        assert self._alert(status=AlertStatus.ACKNOWLEDGED).is_active
        assert not self._alert(status=AlertStatus.RESOLVED).is_active

    def test_escalation_level_bounded(self) -> None:
        with pytest.raises(ValidationError, match="escalation_level must be between 0 and 3"):
            self._alert(escalation_level=4)

    def test_escalation_level_checked_on_assignment(self) -> None:
        alert = self._alert(escalation_level=3)
        with pytest.raises(ValidationError):
            alert.escalation_level = 4


class TestConfig:
    """Tests for Config validation."""

    def _config(self, **overrides) -> Config:
        return Config(_env_file=None, **overrides)  # type: ignore[call-arg]

    def test_defaults(self) -> None:
        config = self._config()
        assert config.scan_interval_seconds == 60
        assert config.review_sync_interval_seconds == 300
        assert config.insight_interval_seconds == 3600
        assert config.positive_response_percent == 70
        assert config.threat_window_days == 7

    def test_log_level_normalized(self) -> None:
        assert self._config(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError, match="log_level must be one of"):
            self._config(log_level="LOUD")

    def test_log_format(self) -> None:
        assert self._config(log_format="JSON").log_format == "json"
        with pytest.raises(ValidationError):
            self._config(log_format="xml")

    def test_intervals_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="value must be greater than 0"):
            self._config(scan_interval_seconds=0)

    def test_positive_response_percent_range(self) -> None:
        with pytest.raises(ValidationError):
            self._config(positive_response_percent=101)

    def test_timeout_range(self) -> None:
        with pytest.raises(ValidationError):
            self._config(fetch_timeout_seconds=0)

    def test_alert_digest_frequency(self) -> None:
        assert self._config().alert_digest_frequency is None
        assert self._config(alert_digest_frequency=" Weekly ").alert_digest_frequency == "weekly"
        assert self._config(alert_digest_frequency="").alert_digest_frequency is None
        with pytest.raises(ValidationError, match="alert_digest_frequency must be one of"):
            self._config(alert_digest_frequency="monthly")

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("SCAN_INTERVAL_SECONDS", "15")
        monkeypatch.setenv("ORGANIZATION_ID", "acme")
        config = self._config()
        assert config.scan_interval_seconds == 15
        assert config.organization_id == "acme"
