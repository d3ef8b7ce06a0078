"""Per-source baseline of the last observed attributes of a tracked entity."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.tracked_entity import DataSource
from src.utils.clock import as_utc

AttributeValue = float | int | list[str]


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class SourceSnapshot(BaseModel):
    """Point-in-time observation of one entity on one data source.

    ``attributes`` holds numeric readings (``rating``, ``review_count``,
    ``price_level``, ``followers`` ...) and set-valued readings such as
    ``services`` stored as sorted string lists.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_id: str
    source: DataSource
    attributes: dict[str, AttributeValue] = Field(default_factory=dict)
    captured_at: datetime = Field(default_factory=_utc_now)

    @field_validator("attributes")
    @classmethod
    def validate_attributes(cls, value: dict[str, AttributeValue]) -> dict[str, AttributeValue]:
        """Attribute names must be non-empty; list values are normalized and sorted."""
        normalized: dict[str, AttributeValue] = {}
        for name, reading in value.items():
            if not name.strip():
                msg = "Attribute names must not be empty"
                raise ValueError(msg)
            if isinstance(reading, list):
                normalized[name] = sorted({item.strip() for item in reading if item.strip()})
            else:
                normalized[name] = reading
        return normalized

    @field_validator("captured_at")
    @classmethod
    def validate_captured_at(cls, value: datetime) -> datetime:
        return as_utc(value)

    def numeric(self, name: str) -> float | None:
        """Return a numeric attribute, or None when absent or not a number."""
        reading = self.attributes.get(name)
        if isinstance(reading, bool) or not isinstance(reading, int | float):
            return None
        return float(reading)

    def items(self, name: str) -> set[str] | None:
        """Return a set-valued attribute, or None when absent."""
        reading = self.attributes.get(name)
        if not isinstance(reading, list):
            return None
        return set(reading)
