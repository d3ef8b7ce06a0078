"""Proprietary metric model: derived scores with interpretation."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.models.change import Recommendation


class MetricCategory(StrEnum):
    REVENUE = "revenue"
    COMPETITIVE = "competitive"
    REPUTATION = "reputation"
    OPERATIONAL = "operational"


class MetricTrend(StrEnum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class Benchmark(BaseModel):
    industry: float = 50.0
    top_quartile: float = 75.0
    median: float = 50.0
    bottom_quartile: float = 25.0


class Interpretation(BaseModel):
    meaning: str
    implications: list[str] = Field(default_factory=list)
    confidence: int = 85


class MetricFactor(BaseModel):
    """One weighted input of a composite score."""

    name: str
    value: float
    weight: float

    @property
    def contribution(self) -> float:
        return self.value * self.weight


class ProprietaryMetric(BaseModel):
    """A derived score keyed by ``<kind>:<subject>``, overwritten on recompute."""

    id: str
    key: str
    organization_id: str
    name: str
    category: MetricCategory
    value: float
    trend: MetricTrend = MetricTrend.STABLE
    benchmark: Benchmark = Field(default_factory=Benchmark)
    interpretation: Interpretation
    recommendations: list[Recommendation] = Field(default_factory=list)
    factors: list[MetricFactor] = Field(default_factory=list)
    last_calculated_at: datetime
