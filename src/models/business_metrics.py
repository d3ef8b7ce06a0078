"""Business metrics snapshot models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.models.tracked_entity import ThreatLevel


class MetricsPeriod(StrEnum):
    """Aggregation period of a metrics snapshot."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RevenueMetrics(BaseModel):
    total: float = 0.0
    growth: float = 0.0
    average_order_value: float = 0.0
    customer_lifetime_value: float = 0.0
    churn_rate: float = 0.0
    recurring_revenue: float = 0.0


class CustomerMetrics(BaseModel):
    total: int = 0
    new: int = 0
    active: int = 0
    churned: int = 0
    satisfaction: float = 0.0
    retention: float = 0.0


class ReputationAggregate(BaseModel):
    average_rating: float = 0.0
    total_reviews: int = 0
    response_rate: float = 0.0
    sentiment_score: float = 0.0
    response_time_hours: float = 0.0
    trend: str = "stable"


class CompetitiveAggregate(BaseModel):
    market_share: float = 0.0
    competitive_position: float = 0.0
    threat_level: ThreatLevel = ThreatLevel.LOW
    opportunities: int = 0
    pricing_advantage: float = 0.0


class OperationalMetrics(BaseModel):
    efficiency: float = 0.0
    cost_per_acquisition: float = 0.0
    cost_per_retention: float = 0.0
    automation_rate: float = 0.0
    error_rate: float = 0.0


class BusinessMetrics(BaseModel):
    """Point-in-time aggregate of revenue, customer, reputation, competitive
    and operational figures for one organization."""

    id: str
    organization_id: str
    period: MetricsPeriod = MetricsPeriod.DAILY
    revenue: RevenueMetrics = Field(default_factory=RevenueMetrics)
    customers: CustomerMetrics = Field(default_factory=CustomerMetrics)
    reputation: ReputationAggregate = Field(default_factory=ReputationAggregate)
    competitive: CompetitiveAggregate = Field(default_factory=CompetitiveAggregate)
    operational: OperationalMetrics = Field(default_factory=OperationalMetrics)
    calculated_at: datetime

    @classmethod
    def empty(cls, organization_id: str, calculated_at: datetime) -> BusinessMetrics:
        """Zeroed metrics used when nothing has been calculated yet."""
        return cls(id="", organization_id=organization_id, calculated_at=calculated_at)


class MarketData(BaseModel):
    """Market context supplied by the business-data provider."""

    market_share: float = 0.0
    pricing_advantage: float = 0.0
    own_rating: float = 0.0
    volatility: float = 0.0
    current_competitor_share: float = 0.0
    previous_competitor_share: float = 0.0
