"""Entity threat level derived from recent high-impact changes."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from src.models.tracked_entity import ThreatLevel

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from src.models.change import Change

DEFAULT_THREAT_WINDOW = timedelta(days=7)


def threat_from_count(high_impact_count: int) -> ThreatLevel:
    """Band a count of high-impact events into a threat level."""
    if high_impact_count >= 3:
        return ThreatLevel.CRITICAL
    elif high_impact_count >= 2:
        return ThreatLevel.HIGH
    elif high_impact_count >= 1:
        return ThreatLevel.MEDIUM
    return ThreatLevel.LOW


def count_recent_high_impact(
    changes: Iterable[Change],
    entity_id: str,
    now: datetime,
    window: timedelta = DEFAULT_THREAT_WINDOW,
) -> int:
    """Count the entity's high/critical changes detected within the trailing window."""
    cutoff = now - window
    return sum(
        1
        for change in changes
        if change.entity_id == entity_id and change.is_high_impact and change.detected_at > cutoff
    )


def compute_threat_level(
    changes: Iterable[Change],
    entity_id: str,
    now: datetime,
    window: timedelta = DEFAULT_THREAT_WINDOW,
) -> ThreatLevel:
    """Recompute an entity's threat level from the change log.

    Always derived by filtering, so changes that age out of the window lower
    the level on the next evaluation.
    """
    return threat_from_count(count_recent_high_impact(changes, entity_id, now, window))
