"""Change model for differences detected between source snapshots."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.tracked_entity import DataSource


class ChangeType(StrEnum):
    """Kind of competitor change."""

    PRICING = "pricing"
    RATING = "rating"
    REVIEW_VOLUME = "review_volume"
    SOCIAL_GROWTH = "social_growth"
    SERVICE = "service"


class ImpactLevel(StrEnum):
    """Severity assigned to a change from the magnitude of its delta."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ChangeStatus(StrEnum):
    """Operator workflow status of a change."""

    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class Priority(StrEnum):
    """Priority shared by recommendations and insights."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ExpectedImpact(BaseModel):
    """Estimated effect of acting on a recommendation."""

    revenue: float = 0.0
    customers: int = 0
    reputation: float = 0.0
    operational: float = 0.0
    timeframe: str = ""


class Recommendation(BaseModel):
    """Suggested action attached to a change, insight or metric."""

    id: str
    type: str
    title: str
    description: str
    priority: Priority = Priority.MEDIUM
    expected_impact: ExpectedImpact = Field(default_factory=ExpectedImpact)
    timeline: str = ""
    success_metrics: list[str] = Field(default_factory=list)


class ChangeAnalysis(BaseModel):
    """Derived reading of what a change means for the operator."""

    sentiment: str
    key_topics: list[str] = Field(default_factory=list)
    urgency: Priority = Priority.MEDIUM
    suggested_action: str
    reasoning: str


class Change(BaseModel):
    """Immutable record of a detected competitor change.

    Only ``status`` may change after creation; the change log is append-only.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str
    entity_id: str
    source: DataSource
    change_type: ChangeType
    attribute: str
    title: str
    description: str
    detected_at: datetime
    impact: ImpactLevel
    confidence: int
    before: Any = None
    after: Any = None
    delta: float = 0.0
    analysis: ChangeAnalysis
    recommendations: list[Recommendation] = Field(default_factory=list)
    status: ChangeStatus = ChangeStatus.NEW

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, value: int) -> int:
        """Confidence must be between 0 and 100."""
        if value < 0 or value > 100:
            msg = "confidence must be between 0 and 100"
            raise ValueError(msg)
        return value

    @property
    def is_high_impact(self) -> bool:
        return self.impact in (ImpactLevel.HIGH, ImpactLevel.CRITICAL)
