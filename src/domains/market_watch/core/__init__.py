"""Market watch core -- pure functions for competitor change detection and threat scoring."""

from __future__ import annotations

from src.domains.market_watch.core.change_detection import NUMERIC_RULES, detect_changes
from src.domains.market_watch.core.impact import classify_impact
from src.domains.market_watch.core.threat import compute_threat_level, threat_from_count

__all__ = [
    "NUMERIC_RULES",
    "classify_impact",
    "compute_threat_level",
    "detect_changes",
    "threat_from_count",
]
