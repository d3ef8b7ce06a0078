"""Intelligence insight model."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.models.change import Priority, Recommendation


class InsightType(StrEnum):
    OPPORTUNITY = "opportunity"
    THREAT = "threat"
    ANOMALY = "anomaly"
    OPTIMIZATION = "optimization"


class InsightCategory(StrEnum):
    REVENUE = "revenue"
    COMPETITIVE = "competitive"
    REPUTATION = "reputation"
    OPERATIONAL = "operational"
    CUSTOMER = "customer"


class IntelligenceInsight(BaseModel):
    """An actionable observation derived from metrics, changes or reviews."""

    id: str
    organization_id: str
    insight_type: InsightType
    category: InsightCategory
    title: str
    description: str
    priority: Priority = Priority.MEDIUM
    confidence: int = 80
    evidence: list[dict[str, Any]] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    created_at: datetime

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, value: int) -> int:
        """Confidence must be between 0 and 100."""
        if value < 0 or value > 100:
            msg = "confidence must be between 0 and 100"
            raise ValueError(msg)
        return value
