"""Source fetcher, review source and business data provider backed by a JSON file.

The file is re-read on every call so edits between cycles show up as changes::

    {
      "organization": {"id": "org-1", "market": {...}, "revenue": {...}},
      "competitors": [{"id": "pizza-co", "name": "Pizza Co", "sources": ["google"]}],
      "snapshots": {"pizza-co": {"google": {"price_level": 2, "rating": 4.2}}},
      "review_profiles": [{"id": "gp-1", "business_id": "org-1", "platform": "google"}],
      "reviews": {"gp-1": [{"external_id": "r1", "rating": 1, "content": "...",
                            "published_at": "2024-01-01T10:00:00Z"}]}
    }
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from src.core.errors import FetchError
from src.models.business_metrics import (
    CustomerMetrics,
    MarketData,
    OperationalMetrics,
    RevenueMetrics,
)
from src.models.review import ReviewPayload, ReviewProfile
from src.models.source_snapshot import SourceSnapshot
from src.models.tracked_entity import DataSource, TrackedEntity

if TYPE_CHECKING:
    from src.utils.clock import Clock

logger = structlog.get_logger(__name__)


def load_data_file(path: str | Path) -> dict[str, Any]:
    """Read and parse the JSON data file. Raises FileNotFoundError / ValueError."""
    file_path = Path(path)
    with file_path.open(encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        msg = f"{file_path} must contain a JSON object"
        raise ValueError(msg)
    return data


def load_competitors(path: str | Path, clock: Clock) -> list[TrackedEntity]:
    """Build tracked entities from the ``competitors`` section."""
    entities = []
    for raw in load_data_file(path).get("competitors", []):
        entities.append(TrackedEntity.model_validate({"created_at": clock.now(), **raw}))
    return entities


def load_review_profiles(path: str | Path, clock: Clock) -> list[ReviewProfile]:
    """Build review profiles from the ``review_profiles`` section."""
    return [
        ReviewProfile.model_validate({"created_at": clock.now(), **raw})
        for raw in load_data_file(path).get("review_profiles", [])
    ]


class JsonSourceFetcher:
    """Serves snapshots from the ``snapshots`` section of the data file."""

    def __init__(self, path: str | Path, clock: Clock) -> None:
        self.path = Path(path)
        self.clock = clock

    def fetch(self, entity: TrackedEntity, source: DataSource) -> SourceSnapshot:
        try:
            data = load_data_file(self.path)
        except (OSError, ValueError) as exc:
            raise FetchError(str(source), entity.id, str(exc)) from exc

        attributes = data.get("snapshots", {}).get(entity.id, {}).get(str(source))
        if attributes is None:
            raise FetchError(str(source), entity.id, "no data for source")

        try:
            return SourceSnapshot(
                entity_id=entity.id,
                source=source,
                attributes=attributes,
                captured_at=self.clock.now(),
            )
        except ValidationError as exc:
            raise FetchError(str(source), entity.id, f"invalid attributes: {exc}") from exc


class JsonReviewSource:
    """Serves review payloads from the ``reviews`` section of the data file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def fetch_reviews(self, profile: ReviewProfile, since: datetime | None) -> list[ReviewPayload]:
        raw_reviews = load_data_file(self.path).get("reviews", {}).get(profile.id, [])
        payloads = []
        for raw in raw_reviews:
            try:
                payload = ReviewPayload.model_validate(raw)
            except ValidationError as exc:
                logger.warning(
                    "review_payload_invalid",
                    profile_id=profile.id,
                    external_id=raw.get("external_id") if isinstance(raw, dict) else None,
                    error=str(exc),
                )
                continue
            if since is None or payload.published_at > since:
                payloads.append(payload)
        return payloads


class StaticBusinessDataProvider:
    """Fixed business figures, optionally overridden by the data file's ``organization`` section."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else None

    def _section(self, name: str) -> dict[str, Any]:
        if self.path is None:
            return {}
        organization = load_data_file(self.path).get("organization", {})
        section = organization.get(name, {})
        return section if isinstance(section, dict) else {}

    def revenue(self, organization_id: str) -> RevenueMetrics:
        defaults = {
            "total": 50000 * 1.12,
            "growth": 12.0,
            "average_order_value": 150.0,
            "customer_lifetime_value": 1200.0,
            "churn_rate": 0.05,
            "recurring_revenue": 40000.0,
        }
        return RevenueMetrics.model_validate({**defaults, **self._section("revenue")})

    def customers(self, organization_id: str) -> CustomerMetrics:
        defaults = {
            "total": 1250,
            "new": 85,
            "active": 1100,
            "churned": 25,
            "satisfaction": 8.2,
            "retention": 0.92,
        }
        return CustomerMetrics.model_validate({**defaults, **self._section("customers")})

    def operational(self, organization_id: str) -> OperationalMetrics:
        defaults = {
            "efficiency": 78.0,
            "cost_per_acquisition": 45.0,
            "cost_per_retention": 12.0,
            "automation_rate": 0.65,
            "error_rate": 0.02,
        }
        return OperationalMetrics.model_validate({**defaults, **self._section("operational")})

    def market(self, organization_id: str) -> MarketData:
        defaults = {
            "market_share": 15.0,
            "pricing_advantage": 0.85,
            "own_rating": 4.2,
            "volatility": 0.15,
            "current_competitor_share": 0.12,
            "previous_competitor_share": 0.10,
        }
        return MarketData.model_validate({**defaults, **self._section("market")})
