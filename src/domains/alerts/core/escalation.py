"""Alert severity mapping and escalation rules."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from src.models.alert import MAX_ESCALATION_LEVEL, AlertSeverity, AlertStatus
from src.models.change import ImpactLevel

if TYPE_CHECKING:
    from datetime import datetime

    from src.models.alert import Alert

ALERTABLE_IMPACTS = frozenset({ImpactLevel.HIGH, ImpactLevel.CRITICAL})

INITIAL_ESCALATION: dict[AlertSeverity, int] = {
    AlertSeverity.CRITICAL: 2,
    AlertSeverity.ERROR: 1,
    AlertSeverity.WARNING: 1,
    AlertSeverity.INFO: 0,
}

# Time an alert may stay unacknowledged before it escalates again
STALE_AFTER: dict[AlertSeverity, timedelta] = {
    AlertSeverity.CRITICAL: timedelta(minutes=30),
    AlertSeverity.ERROR: timedelta(hours=2),
    AlertSeverity.WARNING: timedelta(hours=6),
    AlertSeverity.INFO: timedelta(hours=24),
}

ESCALATING_SEVERITIES = frozenset({AlertSeverity.CRITICAL, AlertSeverity.ERROR})


def should_alert(impact: ImpactLevel) -> bool:
    return impact in ALERTABLE_IMPACTS


def severity_for_impact(impact: ImpactLevel) -> AlertSeverity:
    """Critical changes raise critical alerts; everything else alertable is a warning."""
    if impact == ImpactLevel.CRITICAL:
        return AlertSeverity.CRITICAL
    return AlertSeverity.WARNING


def initial_escalation_level(severity: AlertSeverity) -> int:
    return INITIAL_ESCALATION[severity]


def needs_escalation_sink(severity: AlertSeverity) -> bool:
    return severity in ESCALATING_SEVERITIES


def is_stale(alert: Alert, now: datetime) -> bool:
    """True when an unacknowledged alert has waited past its severity threshold.

    Measured from the last escalation, or from creation if it never escalated.
    Alerts already at the maximum level never go stale.
    """
    if alert.status != AlertStatus.NEW or alert.escalation_level >= MAX_ESCALATION_LEVEL:
        return False
    reference = alert.last_escalated_at or alert.created_at
    return now - reference >= STALE_AFTER[alert.severity]
