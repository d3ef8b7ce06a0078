"""In-memory alert store."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from src.core.errors import NotFoundError

if TYPE_CHECKING:
    from src.models.alert import Alert, DigestSchedule


class AlertRepository:
    """Holds every alert ever raised, and the digest schedules. Alerts are never deleted."""

    def __init__(self) -> None:
        self._alerts: dict[str, Alert] = {}
        self._schedules: dict[str, DigestSchedule] = {}
        self._lock = threading.Lock()

    def add(self, alert: Alert) -> Alert:
        with self._lock:
            self._alerts[alert.id] = alert
        return alert

    def get(self, alert_id: str) -> Alert:
        with self._lock:
            alert = self._alerts.get(alert_id)
        if alert is None:
            raise NotFoundError("alert", alert_id)
        return alert

    def list_all(self) -> list[Alert]:
        """All alerts, newest first."""
        with self._lock:
            alerts = list(self._alerts.values())
        return sorted(alerts, key=lambda alert: alert.created_at, reverse=True)

    def list_active(self) -> list[Alert]:
        """New and acknowledged alerts, newest first."""
        return [alert for alert in self.list_all() if alert.is_active]

    def find_by_source_change(self, change_id: str) -> Alert | None:
        with self._lock:
            for alert in self._alerts.values():
                if alert.source_change_id == change_id:
                    return alert
        return None

    def find_by_source_review(self, review_id: str) -> Alert | None:
        with self._lock:
            for alert in self._alerts.values():
                if alert.source_review_id == review_id:
                    return alert
        return None

    def add_digest_schedule(self, schedule: DigestSchedule) -> DigestSchedule:
        with self._lock:
            self._schedules[schedule.id] = schedule
        return schedule

    def get_digest_schedule(self, schedule_id: str) -> DigestSchedule:
        with self._lock:
            schedule = self._schedules.get(schedule_id)
        if schedule is None:
            raise NotFoundError("digest_schedule", schedule_id)
        return schedule

    def list_digest_schedules(self) -> list[DigestSchedule]:
        """All schedules, oldest first."""
        with self._lock:
            schedules = list(self._schedules.values())
        return sorted(schedules, key=lambda schedule: schedule.created_at)
