"""Dashboard widget and overview models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.alert import Alert
from src.models.business_metrics import BusinessMetrics
from src.models.insight import IntelligenceInsight
from src.models.proprietary_metric import ProprietaryMetric


class WidgetType(StrEnum):
    REVENUE_OVERVIEW = "revenue_overview"
    COMPETITIVE_ACTIVITY = "competitive_activity"
    REVIEW_SENTIMENT = "review_sentiment"
    THREAT_LEVEL = "threat_level"
    OPPORTUNITY_SCORE = "opportunity_score"
    AI_INSIGHTS = "ai_insights"
    ALERT_FEED = "alert_feed"


class WidgetDataKind(StrEnum):
    METRIC = "metric"
    CHART = "chart"
    LIST = "list"
    TABLE = "table"


class WidgetPosition(BaseModel):
    x: int = 0
    y: int = 0


class WidgetSize(BaseModel):
    width: int = 4
    height: int = 3


class WidgetData(BaseModel):
    kind: WidgetDataKind
    content: dict[str, Any] = Field(default_factory=dict)


class DashboardWidget(BaseModel):
    """A dashboard tile whose data is refreshed on its own interval."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    widget_type: WidgetType
    title: str
    position: WidgetPosition = Field(default_factory=WidgetPosition)
    size: WidgetSize = Field(default_factory=WidgetSize)
    refresh_interval: int
    data: WidgetData
    last_updated_at: datetime | None = None


class DashboardOverview(BaseModel):
    """Read model returned to dashboard clients."""

    metrics: BusinessMetrics
    insights: list[IntelligenceInsight] = Field(default_factory=list)
    proprietary_metrics: list[ProprietaryMetric] = Field(default_factory=list)
    widgets: list[DashboardWidget] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
