"""In-memory store of the latest snapshot per (entity, source)."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.models.source_snapshot import SourceSnapshot
    from src.models.tracked_entity import DataSource


class SnapshotRepository:
    """Holds one baseline snapshot per entity and source, overwritten on each scan."""

    def __init__(self) -> None:
        self._snapshots: dict[tuple[str, DataSource], SourceSnapshot] = {}
        self._lock = threading.Lock()

    def get_latest(self, entity_id: str, source: DataSource) -> SourceSnapshot | None:
        with self._lock:
            return self._snapshots.get((entity_id, source))

    def get_latest_for_entity(self, entity_id: str) -> dict[DataSource, SourceSnapshot]:
        """Latest snapshot of every source seen for the entity."""
        with self._lock:
            return {
                source: snapshot
                for (owner, source), snapshot in self._snapshots.items()
                if owner == entity_id
            }

    def store(self, snapshot: SourceSnapshot) -> None:
        """Replace the baseline for the snapshot's entity and source."""
        with self._lock:
            self._snapshots[(snapshot.entity_id, snapshot.source)] = snapshot

    def store_many(self, snapshots: list[SourceSnapshot]) -> None:
        with self._lock:
            for snapshot in snapshots:
                self._snapshots[(snapshot.entity_id, snapshot.source)] = snapshot

    def count(self) -> int:
        with self._lock:
            return len(self._snapshots)
