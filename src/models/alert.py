"""Alert model for high-impact events pushed to notification sinks."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_ESCALATION_LEVEL = 3


class AlertType(StrEnum):
    """What produced the alert."""

    COMPETITOR_ACTIVITY = "competitor_activity"
    NEGATIVE_REVIEW = "negative_review"


class AlertSeverity(StrEnum):
    """Severity of an alert; error and critical also go to the escalation sink."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AlertStatus(StrEnum):
    """Operator workflow status of an alert."""

    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class Alert(BaseModel):
    """Represents an alert raised for a change or review."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str
    organization_id: str
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    entity_id: str | None = None
    source_change_id: str | None = None
    source_review_id: str | None = None
    created_at: datetime
    status: AlertStatus = AlertStatus.NEW
    escalation_level: int = 0
    last_escalated_at: datetime | None = None
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    resolution: str | None = None

    @field_validator("escalation_level")
    @classmethod
    def validate_escalation_level(cls, value: int) -> int:
        """Escalation level must be between 0 and 3."""
        if value < 0 or value > MAX_ESCALATION_LEVEL:
            msg = f"escalation_level must be between 0 and {MAX_ESCALATION_LEVEL}"
            raise ValueError(msg)
        return value

    @property
    def is_active(self) -> bool:
        return self.status in (AlertStatus.NEW, AlertStatus.ACKNOWLEDGED)


class DigestFrequency(StrEnum):
    """How often a digest schedule sends."""

    DAILY = "daily"
    WEEKLY = "weekly"


class DigestSchedule(BaseModel):
    """Recurring grouped summary of alerts.

    Each filter set narrows the alerts included; an empty set matches every
    alert for that field.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str
    organization_id: str
    frequency: DigestFrequency
    alert_types: set[AlertType] = Field(default_factory=set)
    severities: set[AlertSeverity] = Field(default_factory=set)
    entity_ids: set[str] = Field(default_factory=set)
    is_active: bool = True
    created_at: datetime
    last_sent_at: datetime | None = None
    next_send_at: datetime


class AlertDigest(BaseModel):
    """One delivered digest: the alerts of a period rendered as a single message."""

    model_config = ConfigDict(frozen=True)

    schedule_id: str
    organization_id: str
    frequency: DigestFrequency
    period_start: datetime
    period_end: datetime
    alert_ids: list[str]
    severity_counts: dict[str, int]
    content: str
