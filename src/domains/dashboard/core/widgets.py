"""Default dashboard layout and the pure builders for widget content."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from src.models.dashboard import (
    DashboardWidget,
    WidgetData,
    WidgetDataKind,
    WidgetPosition,
    WidgetSize,
    WidgetType,
)
from src.models.insight import InsightType
from src.models.review import Sentiment

if TYPE_CHECKING:
    from datetime import datetime

    from src.models.alert import Alert
    from src.models.business_metrics import BusinessMetrics
    from src.models.change import Change
    from src.models.insight import IntelligenceInsight
    from src.models.proprietary_metric import ProprietaryMetric
    from src.models.review import Review


@dataclass(frozen=True)
class WidgetSpec:
    id: str
    widget_type: WidgetType
    title: str
    x: int
    y: int
    width: int
    height: int
    refresh_interval: int
    kind: WidgetDataKind


DEFAULT_LAYOUT: tuple[WidgetSpec, ...] = (
    WidgetSpec("revenue-overview", WidgetType.REVENUE_OVERVIEW, "Revenue Overview",
               0, 0, 6, 4, 300, WidgetDataKind.CHART),
    WidgetSpec("competitive-activity", WidgetType.COMPETITIVE_ACTIVITY, "Competitive Activity",
               6, 0, 6, 4, 600, WidgetDataKind.TABLE),
    WidgetSpec("review-sentiment", WidgetType.REVIEW_SENTIMENT, "Review Sentiment",
               0, 4, 4, 3, 300, WidgetDataKind.CHART),
    WidgetSpec("threat-level", WidgetType.THREAT_LEVEL, "Threat Level",
               4, 4, 4, 3, 600, WidgetDataKind.METRIC),
    WidgetSpec("opportunity-score", WidgetType.OPPORTUNITY_SCORE, "Opportunity Score",
               8, 4, 4, 3, 600, WidgetDataKind.METRIC),
    WidgetSpec("ai-insights", WidgetType.AI_INSIGHTS, "AI Insights",
               0, 7, 8, 4, 300, WidgetDataKind.LIST),
    WidgetSpec("alert-feed", WidgetType.ALERT_FEED, "Active Alerts",
               8, 7, 4, 4, 60, WidgetDataKind.LIST),
)  # fmt: skip

DEFAULT_WIDGET_IDS: tuple[str, ...] = tuple(entry.id for entry in DEFAULT_LAYOUT)

SENTIMENT_COLORS: dict[Sentiment, str] = {
    Sentiment.VERY_POSITIVE: "#10B981",
    Sentiment.POSITIVE: "#34D399",
    Sentiment.NEUTRAL: "#FBBF24",
    Sentiment.NEGATIVE: "#F87171",
    Sentiment.VERY_NEGATIVE: "#EF4444",
}

ACTIVITY_ROWS = 10
INSIGHT_ITEMS = 5
ALERT_ITEMS = 10


def default_widgets() -> list[DashboardWidget]:
    """Fresh widgets for the default layout, with empty data and never refreshed."""
    return [
        DashboardWidget(
            id=entry.id,
            widget_type=entry.widget_type,
            title=entry.title,
            position=WidgetPosition(x=entry.x, y=entry.y),
            size=WidgetSize(width=entry.width, height=entry.height),
            refresh_interval=entry.refresh_interval,
            data=WidgetData(kind=entry.kind),
        )
        for entry in DEFAULT_LAYOUT
    ]


def is_due(widget: DashboardWidget, now: datetime) -> bool:
    """True when the widget was never refreshed or its interval has elapsed."""
    if widget.last_updated_at is None:
        return True
    return now - widget.last_updated_at >= timedelta(seconds=widget.refresh_interval)


def revenue_overview_content(history: list[BusinessMetrics]) -> dict[str, Any]:
    return {
        "type": "line",
        "labels": [snapshot.calculated_at.isoformat() for snapshot in history],
        "datasets": [
            {"label": "Revenue", "data": [snapshot.revenue.total for snapshot in history]}
        ],
    }


def competitive_activity_content(
    changes: list[Change], entity_names: dict[str, str]
) -> dict[str, Any]:
    return {
        "headers": ["Competitor", "Change", "Impact", "Date"],
        "rows": [
            [
                entity_names.get(change.entity_id, "Unknown Competitor"),
                change.title,
                str(change.impact),
                change.detected_at.date().isoformat(),
            ]
            for change in changes[:ACTIVITY_ROWS]
        ],
    }


def review_sentiment_content(reviews: list[Review]) -> dict[str, Any]:
    counts = Counter(review.sentiment for review in reviews)
    return {
        "type": "donut",
        "data": [
            {
                "label": sentiment.value.replace("_", " ").upper(),
                "value": counts.get(sentiment, 0),
                "color": SENTIMENT_COLORS[sentiment],
            }
            for sentiment in reversed(list(Sentiment))
        ],
    }


def threat_level_content(
    metrics: BusinessMetrics, proprietary: list[ProprietaryMetric]
) -> dict[str, Any]:
    """Highest competitor threat rating alongside the overall threat band."""
    threats = [metric for metric in proprietary if metric.key.startswith("threat:")]
    top = max(threats, key=lambda metric: metric.value, default=None)
    return {
        "value": top.value if top else 0,
        "unit": "%",
        "trend": str(top.trend) if top else "stable",
        "level": str(metrics.competitive.threat_level),
        "competitor": top.name if top else None,
    }


def opportunity_score_content(
    metrics: BusinessMetrics, insights: list[IntelligenceInsight]
) -> dict[str, Any]:
    opportunities = [
        insight for insight in insights if insight.insight_type == InsightType.OPPORTUNITY
    ]
    return {
        "value": metrics.competitive.opportunities,
        "unit": "opportunities",
        "insights": len(opportunities),
        "competitive_position": metrics.competitive.competitive_position,
    }


def ai_insights_content(insights: list[IntelligenceInsight]) -> dict[str, Any]:
    return {
        "items": [
            {
                "title": insight.title,
                "description": insight.description,
                "priority": str(insight.priority),
                "confidence": insight.confidence,
            }
            for insight in insights[:INSIGHT_ITEMS]
        ]
    }


def alert_feed_content(alerts: list[Alert]) -> dict[str, Any]:
    return {
        "items": [
            {
                "id": alert.id,
                "title": alert.title,
                "message": alert.message,
                "severity": str(alert.severity),
                "created_at": alert.created_at.isoformat(),
            }
            for alert in alerts[:ALERT_ITEMS]
        ]
    }
