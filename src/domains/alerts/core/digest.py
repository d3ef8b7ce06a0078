"""Digest scheduling, alert selection and rendering. Pure functions."""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from typing import TYPE_CHECKING

from src.models.alert import AlertSeverity, AlertType, DigestFrequency

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from src.models.alert import Alert, DigestSchedule

DIGEST_INTERVALS: dict[DigestFrequency, timedelta] = {
    DigestFrequency.DAILY: timedelta(days=1),
    DigestFrequency.WEEKLY: timedelta(days=7),
}

# Period covered by a schedule's first digest
FIRST_DIGEST_LOOKBACK = timedelta(days=7)


def next_send_time(frequency: DigestFrequency, after: datetime) -> datetime:
    return after + DIGEST_INTERVALS[frequency]


def is_digest_due(schedule: DigestSchedule, now: datetime) -> bool:
    return schedule.is_active and schedule.next_send_at <= now


def digest_period_start(schedule: DigestSchedule, now: datetime) -> datetime:
    """Alerts after the previous send, or the lookback window for a first digest."""
    return schedule.last_sent_at or now - FIRST_DIGEST_LOOKBACK


def matches_filters(alert: Alert, schedule: DigestSchedule) -> bool:
    if schedule.alert_types and alert.alert_type not in schedule.alert_types:
        return False
    if schedule.severities and alert.severity not in schedule.severities:
        return False
    return not schedule.entity_ids or alert.entity_id in schedule.entity_ids


def select_digest_alerts(
    alerts: Iterable[Alert], schedule: DigestSchedule, since: datetime, until: datetime
) -> list[Alert]:
    """Alerts created in ``(since, until]`` that pass the schedule filters, oldest first."""
    selected = [
        alert
        for alert in alerts
        if since < alert.created_at <= until and matches_filters(alert, schedule)
    ]
    return sorted(selected, key=lambda alert: alert.created_at)


def severity_counts(alerts: Iterable[Alert]) -> dict[str, int]:
    counts = Counter(str(alert.severity) for alert in alerts)
    return {str(severity): counts[str(severity)] for severity in AlertSeverity}


def build_digest_content(
    alerts: list[Alert],
    frequency: DigestFrequency,
    period_start: datetime,
    period_end: datetime,
) -> str:
    """Render alerts grouped by type, with a severity footer."""
    lines = [
        f"{str(frequency).upper()} ALERT DIGEST",
        f"Period: {period_start:%Y-%m-%d %H:%M} - {period_end:%Y-%m-%d %H:%M} UTC",
        "",
    ]
    for alert_type in AlertType:
        group = [alert for alert in alerts if alert.alert_type == alert_type]
        if not group:
            continue
        lines.append(f"## {str(alert_type).replace('_', ' ').upper()} ({len(group)})")
        for alert in group:
            lines.extend(
                [
                    f"- {alert.title}",
                    f"  {alert.message}",
                    f"  Severity: {str(alert.severity).upper()}",
                    f"  Time: {alert.created_at:%Y-%m-%d %H:%M} UTC",
                ]
            )
        lines.append("")

    counts = severity_counts(alerts)
    lines.extend(
        [
            "---",
            f"Total alerts: {len(alerts)}",
            f"Critical: {counts[AlertSeverity.CRITICAL]}",
            f"Error: {counts[AlertSeverity.ERROR]}",
        ]
    )
    return "\n".join(lines)
