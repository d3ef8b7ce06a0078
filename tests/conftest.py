"""Shared test fixtures for the market intelligence core."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from src.app import build_application
from src.core.errors import FetchError
from src.models.change import (
    Change,
    ChangeAnalysis,
    ChangeType,
    ImpactLevel,
)
from src.models.config import Config
from src.models.review import Review, ReviewPayload, ReviewPlatform, ReviewProfile, Sentiment
from src.models.source_snapshot import SourceSnapshot
from src.models.tracked_entity import DataSource, TrackedEntity
from src.services.json_sources import StaticBusinessDataProvider
from src.services.template_generator import TemplateResponseGenerator
from src.utils.clock import ManualClock

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from src.app import Application
    from src.models.alert import Alert, AlertDigest

START = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class StubFetcher:
    """Serves per-(entity, source) attribute dicts that tests edit between scans."""

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self.readings: dict[tuple[str, DataSource], dict[str, Any]] = {}
        self.failing: set[tuple[str, DataSource]] = set()
        self.calls = 0

    def set(self, entity_id: str, source: str, **attributes: Any) -> None:
        self.readings[(entity_id, DataSource(source))] = attributes

    def update(self, entity_id: str, source: str, **attributes: Any) -> None:
        self.readings[(entity_id, DataSource(source))].update(attributes)

    def fail(self, entity_id: str, source: str) -> None:
        self.failing.add((entity_id, DataSource(source)))

    def fetch(self, entity: TrackedEntity, source: DataSource) -> SourceSnapshot:
        self.calls += 1
        key = (entity.id, source)
        if key in self.failing:
            raise FetchError(str(source), entity.id, "source unavailable")
        attributes = self.readings.get(key)
        if attributes is None:
            raise FetchError(str(source), entity.id, "no data")
        return SourceSnapshot(
            entity_id=entity.id,
            source=source,
            attributes=dict(attributes),
            captured_at=self.clock.now(),
        )


class StubReviewSource:
    """Returns the payloads queued for a profile that were published after ``since``."""

    def __init__(self) -> None:
        self.payloads: dict[str, list[ReviewPayload]] = {}
        self.failing: set[str] = set()

    def add(self, profile_id: str, **fields: Any) -> ReviewPayload:
        payload = ReviewPayload(**fields)
        self.payloads.setdefault(profile_id, []).append(payload)
        return payload

    def fetch_reviews(self, profile: ReviewProfile, since: datetime | None) -> list[ReviewPayload]:
        if profile.id in self.failing:
            msg = f"platform unreachable for {profile.id}"
            raise ConnectionError(msg)
        return [
            payload
            for payload in self.payloads.get(profile.id, [])
            if since is None or payload.published_at > since
        ]


class RecordingSink:
    """Notification sink that keeps every alert and digest it receives."""

    def __init__(self) -> None:
        self.alerts: list[Alert] = []
        self.digests: list[AlertDigest] = []

    def notify(self, alert: Alert) -> None:
        self.alerts.append(alert)

    def notify_digest(self, digest: AlertDigest) -> None:
        self.digests.append(digest)


class FailingSink:
    def notify(self, alert: Alert) -> None:
        msg = "sink offline"
        raise ConnectionError(msg)

    def notify_digest(self, digest: AlertDigest) -> None:
        msg = "sink offline"
        raise ConnectionError(msg)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def fetcher(clock: ManualClock) -> StubFetcher:
    return StubFetcher(clock)


@pytest.fixture
def review_source() -> StubReviewSource:
    return StubReviewSource()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def escalation_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()


@pytest.fixture
def config() -> Config:
    """Configuration isolated from any local .env file."""
    return Config(_env_file=None, organization_id="org-1")  # type: ignore[call-arg]


@pytest.fixture
def app(
    config: Config,
    fetcher: StubFetcher,
    review_source: StubReviewSource,
    sink: RecordingSink,
    escalation_sink: RecordingSink,
    clock: ManualClock,
) -> Iterator[Application]:
    """Fully wired application on a manual clock with stub capabilities."""
    application = build_application(
        config,
        fetcher=fetcher,
        review_source=review_source,
        generator=TemplateResponseGenerator(),
        sinks=[sink],
        escalation_sinks=[escalation_sink],
        clock=clock,
        business_data=StaticBusinessDataProvider(),
    )
    yield application
    application.shutdown()


@pytest.fixture
def pizza_co() -> TrackedEntity:
    return TrackedEntity(
        id="pizza-co",
        name="Pizza Co",
        category="restaurant",
        sources={DataSource.GOOGLE},
        created_at=START,
    )


@pytest.fixture
def make_snapshot() -> Callable[..., SourceSnapshot]:
    """Factory for snapshots of ``pizza-co`` on google."""

    def _make(
        entity_id: str = "pizza-co",
        source: DataSource = DataSource.GOOGLE,
        captured_at: datetime = START,
        **attributes: Any,
    ) -> SourceSnapshot:
        return SourceSnapshot(
            entity_id=entity_id, source=source, attributes=attributes, captured_at=captured_at
        )

    return _make


@pytest.fixture
def make_change() -> Callable[..., Change]:
    """Factory for change records with sensible defaults."""
    counter = {"n": 0}

    def _make(
        entity_id: str = "pizza-co",
        change_type: ChangeType = ChangeType.PRICING,
        impact: ImpactLevel = ImpactLevel.HIGH,
        detected_at: datetime = START,
        before: Any = 2,
        after: Any = 4,
        delta: float = 2.0,
        source: DataSource = DataSource.GOOGLE,
    ) -> Change:
        counter["n"] += 1
        return Change(
            id=f"chg-{counter['n']}",
            entity_id=entity_id,
            source=source,
            change_type=change_type,
            attribute="price_level",
            title=f"{entity_id} {change_type}",
            description="test change",
            detected_at=detected_at,
            impact=impact,
            confidence=90,
            before=before,
            after=after,
            delta=delta,
            analysis=ChangeAnalysis(
                sentiment="neutral",
                suggested_action="Monitor",
                reasoning="test",
            ),
        )

    return _make


@pytest.fixture
def make_review() -> Callable[..., Review]:
    """Factory for stored reviews of business ``org-1``."""
    counter = {"n": 0}

    def _make(
        rating: int = 5,
        sentiment: Sentiment = Sentiment.VERY_POSITIVE,
        published_at: datetime = START,
        content: str = "Great pizza",
        business_id: str = "org-1",
    ) -> Review:
        counter["n"] += 1
        return Review(
            id=f"rev-{counter['n']}",
            profile_id="prf-1",
            business_id=business_id,
            platform=ReviewPlatform.GOOGLE,
            external_id=f"ext-{counter['n']}",
            rating=rating,
            content=content,
            sentiment=sentiment,
            published_at=published_at,
            detected_at=published_at,
        )

    return _make
