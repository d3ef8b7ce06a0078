"""Pydantic data models for the Competitive and Reputation Intelligence Core."""

from src.models.alert import (
    Alert,
    AlertDigest,
    AlertSeverity,
    AlertStatus,
    AlertType,
    DigestFrequency,
    DigestSchedule,
)
from src.models.business_metrics import (
    BusinessMetrics,
    CompetitiveAggregate,
    CustomerMetrics,
    MarketData,
    MetricsPeriod,
    OperationalMetrics,
    ReputationAggregate,
    RevenueMetrics,
)
from src.models.change import (
    Change,
    ChangeAnalysis,
    ChangeStatus,
    ChangeType,
    ExpectedImpact,
    ImpactLevel,
    Priority,
    Recommendation,
)
from src.models.config import Config
from src.models.dashboard import (
    DashboardOverview,
    DashboardWidget,
    WidgetData,
    WidgetDataKind,
    WidgetType,
)
from src.models.insight import InsightCategory, InsightType, IntelligenceInsight
from src.models.proprietary_metric import (
    Benchmark,
    Interpretation,
    MetricCategory,
    MetricFactor,
    MetricTrend,
    ProprietaryMetric,
)
from src.models.review import (
    AIResponse,
    GeneratedResponse,
    HumanResponse,
    ReputationMetrics,
    ResponseFeedback,
    ResponseTone,
    Review,
    ReviewPayload,
    ReviewPlatform,
    ReviewProfile,
    ReviewStatus,
    Sentiment,
)
from src.models.source_snapshot import SourceSnapshot
from src.models.tracked_entity import DataSource, ThreatLevel, TrackedEntity

__all__ = [
    "AIResponse",
    "Alert",
    "AlertDigest",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "Benchmark",
    "BusinessMetrics",
    "Change",
    "ChangeAnalysis",
    "ChangeStatus",
    "ChangeType",
    "CompetitiveAggregate",
    "Config",
    "CustomerMetrics",
    "DashboardOverview",
    "DashboardWidget",
    "DataSource",
    "DigestFrequency",
    "DigestSchedule",
    "ExpectedImpact",
    "GeneratedResponse",
    "HumanResponse",
    "ImpactLevel",
    "InsightCategory",
    "InsightType",
    "IntelligenceInsight",
    "Interpretation",
    "MarketData",
    "MetricCategory",
    "MetricFactor",
    "MetricTrend",
    "MetricsPeriod",
    "OperationalMetrics",
    "Priority",
    "ProprietaryMetric",
    "Recommendation",
    "ReputationAggregate",
    "ReputationMetrics",
    "ResponseFeedback",
    "ResponseTone",
    "RevenueMetrics",
    "Review",
    "ReviewPayload",
    "ReviewPlatform",
    "ReviewProfile",
    "ReviewStatus",
    "Sentiment",
    "SourceSnapshot",
    "ThreatLevel",
    "TrackedEntity",
    "WidgetData",
    "WidgetDataKind",
    "WidgetType",
]
