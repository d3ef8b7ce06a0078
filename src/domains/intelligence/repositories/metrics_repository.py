"""In-memory store for metrics history, proprietary metrics and insights."""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.models.business_metrics import BusinessMetrics
    from src.models.insight import IntelligenceInsight
    from src.models.proprietary_metric import ProprietaryMetric


class MetricsRepository:
    """Bounded per-organization metrics history plus the latest derived outputs."""

    def __init__(self, history_limit: int = 90) -> None:
        self.history_limit = history_limit
        self._history: dict[str, deque[BusinessMetrics]] = {}
        self._proprietary: dict[str, ProprietaryMetric] = {}
        self._insights: dict[str, list[IntelligenceInsight]] = {}
        self._lock = threading.Lock()

    def append_metrics(self, metrics: BusinessMetrics) -> None:
        """Record a snapshot; the oldest one is dropped past the history limit."""
        with self._lock:
            history = self._history.setdefault(
                metrics.organization_id, deque(maxlen=self.history_limit)
            )
            history.append(metrics)

    def latest_metrics(self, organization_id: str) -> BusinessMetrics | None:
        with self._lock:
            history = self._history.get(organization_id)
            return history[-1] if history else None

    def metrics_history(self, organization_id: str) -> list[BusinessMetrics]:
        """Snapshots oldest first."""
        with self._lock:
            return list(self._history.get(organization_id, ()))

    def put_proprietary(self, metric: ProprietaryMetric) -> ProprietaryMetric | None:
        """Store a metric under its key. Returns the value it replaced, if any."""
        with self._lock:
            previous = self._proprietary.get(metric.key)
            self._proprietary[metric.key] = metric
        return previous

    def get_proprietary(self, key: str) -> ProprietaryMetric | None:
        with self._lock:
            return self._proprietary.get(key)

    def list_proprietary(self, organization_id: str) -> list[ProprietaryMetric]:
        with self._lock:
            return [
                metric
                for metric in self._proprietary.values()
                if metric.organization_id == organization_id
            ]

    def replace_insights(self, organization_id: str, insights: list[IntelligenceInsight]) -> None:
        with self._lock:
            self._insights[organization_id] = list(insights)

    def list_insights(self, organization_id: str) -> list[IntelligenceInsight]:
        with self._lock:
            return list(self._insights.get(organization_id, []))
