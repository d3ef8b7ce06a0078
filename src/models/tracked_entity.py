"""Tracked entity model: a competitor or reputation profile under monitoring."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class DataSource(StrEnum):
    """External source a snapshot can be fetched from."""

    GOOGLE = "google"
    YELP = "yelp"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    NEWS = "news"
    PLACES = "places"
    WEBSITE = "website"


class ThreatLevel(StrEnum):
    """Threat an entity poses, derived from its recent high-impact changes."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TrackedEntity(BaseModel):
    """A competitor registered for periodic multi-source scanning."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str
    name: str
    category: str = "general"
    location: str | None = None
    sources: set[DataSource] = Field(default_factory=set)
    threat_level: ThreatLevel = ThreatLevel.LOW
    last_scanned_at: datetime | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utc_now)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        """Strip whitespace and collapse inner spaces."""
        stripped = value.strip()
        if not stripped:
            msg = "Name must not be empty"
            raise ValueError(msg)
        if len(stripped) > 300:
            msg = "Name must not exceed 300 characters"
            raise ValueError(msg)
        return re.sub(r"\s+", " ", stripped)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        """Categories are stored lowercase."""
        stripped = value.strip().lower()
        if not stripped:
            msg = "Category must not be empty"
            raise ValueError(msg)
        return stripped
