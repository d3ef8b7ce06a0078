"""Service protocols defining interfaces for dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from datetime import datetime

    from src.models.alert import Alert, AlertDigest
    from src.models.business_metrics import (
        CustomerMetrics,
        MarketData,
        OperationalMetrics,
        RevenueMetrics,
    )
    from src.models.review import GeneratedResponse, ResponseTone, ReviewPayload, ReviewProfile
    from src.models.source_snapshot import SourceSnapshot
    from src.models.tracked_entity import DataSource, TrackedEntity


class SourceFetcher(Protocol):
    """Fetches the current state of one data source for one entity.

    Implementations raise on failure; the scan cycle treats any exception as
    a skipped entity.
    """

    def fetch(self, entity: TrackedEntity, source: DataSource) -> SourceSnapshot: ...


class NotificationSink(Protocol):
    """Delivers alerts and alert digests to an outward channel."""

    def notify(self, alert: Alert) -> None: ...

    def notify_digest(self, digest: AlertDigest) -> None: ...


class ResponseGenerator(Protocol):
    """Drafts a reply to a review in the requested tone."""

    def generate(self, review_text: str, rating: int, tone: ResponseTone) -> GeneratedResponse: ...


class ReviewSource(Protocol):
    """Lists reviews published on a review profile since a point in time."""

    def fetch_reviews(
        self, profile: ReviewProfile, since: datetime | None
    ) -> list[ReviewPayload]: ...


class BusinessDataProvider(Protocol):
    """Supplies the organization's own revenue, customer, operational and market figures."""

    def revenue(self, organization_id: str) -> RevenueMetrics: ...

    def customers(self, organization_id: str) -> CustomerMetrics: ...

    def operational(self, organization_id: str) -> OperationalMetrics: ...

    def market(self, organization_id: str) -> MarketData: ...
