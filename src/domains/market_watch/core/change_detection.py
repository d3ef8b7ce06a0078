"""Snapshot diffing: turn per-source attribute deltas into typed changes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.domains.market_watch.core.analysis import analyze_change, recommend_actions
from src.domains.market_watch.core.impact import classify_impact
from src.models.change import Change, ChangeType
from src.utils.ids import new_id

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from src.models.source_snapshot import SourceSnapshot
    from src.models.tracked_entity import DataSource, TrackedEntity


@dataclass(frozen=True)
class NumericRule:
    """Emit a change when a numeric attribute moves past a noise threshold."""

    attribute: str
    change_type: ChangeType
    threshold: float
    confidence: int
    increases_only: bool = False
    inclusive: bool = True

    def triggers(self, delta: float) -> bool:
        magnitude = delta if self.increases_only else abs(delta)
        if self.inclusive:
            return magnitude >= self.threshold
        return magnitude > self.threshold


NUMERIC_RULES: tuple[NumericRule, ...] = (
    NumericRule("price_level", ChangeType.PRICING, threshold=1, confidence=95),
    NumericRule("rating", ChangeType.RATING, threshold=0.1, confidence=90, inclusive=False),
    NumericRule(
        "review_count",
        ChangeType.REVIEW_VOLUME,
        threshold=0,
        confidence=85,
        increases_only=True,
        inclusive=False,
    ),
    NumericRule(
        "followers",
        ChangeType.SOCIAL_GROWTH,
        threshold=100,
        confidence=80,
        increases_only=True,
        inclusive=False,
    ),
)

SERVICES_ATTRIBUTE = "services"
SERVICE_CONFIDENCE = 75

# Float noise when comparing ratings like 4.3 - 4.2
_EPSILON = 1e-9


def _title(entity: TrackedEntity, change_type: ChangeType, before: object, after: object) -> str:
    titles = {
        ChangeType.PRICING: f"{entity.name} changed price level from {before} to {after}",
        ChangeType.RATING: f"{entity.name} rating moved from {before} to {after}",
        ChangeType.REVIEW_VOLUME: f"{entity.name} received new reviews",
        ChangeType.SOCIAL_GROWTH: f"{entity.name} gained followers",
        ChangeType.SERVICE: f"{entity.name} updated its services",
    }
    return titles[change_type]


def _format_number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else round(value, 2)


def _numeric_changes(
    entity: TrackedEntity,
    previous: SourceSnapshot,
    current: SourceSnapshot,
    now: datetime,
) -> list[Change]:
    changes: list[Change] = []
    for rule in NUMERIC_RULES:
        before = previous.numeric(rule.attribute)
        after = current.numeric(rule.attribute)
        if before is None or after is None:
            continue

        delta = round(after - before, 6)
        if abs(delta) < _EPSILON or not rule.triggers(delta):
            continue

        before_value = _format_number(before)
        after_value = _format_number(after)
        impact = classify_impact(rule.change_type, delta=delta)
        description = (
            f"{rule.attribute} on {current.source} changed from {before_value} "
            f"to {after_value} ({delta:+g})"
        )
        changes.append(
            Change(
                id=new_id("chg"),
                entity_id=entity.id,
                source=current.source,
                change_type=rule.change_type,
                attribute=rule.attribute,
                title=_title(entity, rule.change_type, before_value, after_value),
                description=description,
                detected_at=now,
                impact=impact,
                confidence=rule.confidence,
                before=before_value,
                after=after_value,
                delta=delta,
                analysis=analyze_change(rule.change_type, entity.name, delta, source=current.source),
                recommendations=recommend_actions(
                    rule.change_type, entity.name, delta, after=after, source=current.source
                ),
            )
        )
    return changes


def _service_change(
    entity: TrackedEntity,
    previous: SourceSnapshot,
    current: SourceSnapshot,
    now: datetime,
) -> Change | None:
    before = previous.items(SERVICES_ATTRIBUTE)
    after = current.items(SERVICES_ATTRIBUTE)
    if before is None or after is None or before == after:
        return None

    added = sorted(after - before)
    removed = sorted(before - after)
    impact = classify_impact(ChangeType.SERVICE, added=len(added), removed=len(removed))

    parts = []
    if added:
        parts.append(f"added {', '.join(added)}")
    if removed:
        parts.append(f"removed {', '.join(removed)}")

    return Change(
        id=new_id("chg"),
        entity_id=entity.id,
        source=current.source,
        change_type=ChangeType.SERVICE,
        attribute=SERVICES_ATTRIBUTE,
        title=_title(entity, ChangeType.SERVICE, before, after),
        description=f"{entity.name} {' and '.join(parts)} on {current.source}",
        detected_at=now,
        impact=impact,
        confidence=SERVICE_CONFIDENCE,
        before=sorted(before),
        after=sorted(after),
        delta=float(len(added) - len(removed)),
        analysis=analyze_change(ChangeType.SERVICE, entity.name, float(len(added))),
        recommendations=recommend_actions(ChangeType.SERVICE, entity.name, float(len(added))),
    )


def detect_changes(
    entity: TrackedEntity,
    previous_by_source: Mapping[DataSource, SourceSnapshot],
    current_by_source: Mapping[DataSource, SourceSnapshot],
    now: datetime,
) -> list[Change]:
    """Compare current snapshots against the stored baseline for each source.

    A source without a previous snapshot only establishes a baseline, so the
    first scan of an entity yields no changes. Attributes missing on either
    side are skipped.
    """
    changes: list[Change] = []
    for source in sorted(current_by_source):
        previous = previous_by_source.get(source)
        if previous is None:
            continue
        current = current_by_source[source]

        changes.extend(_numeric_changes(entity, previous, current, now))
        service_change = _service_change(entity, previous, current, now)
        if service_change is not None:
            changes.append(service_change)

    return changes
