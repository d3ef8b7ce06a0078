"""Append-only change log."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

from src.core.errors import InvalidStateError, NotFoundError
from src.models.change import ChangeStatus

if TYPE_CHECKING:
    from src.models.change import Change

logger = structlog.get_logger(__name__)

_ALLOWED_TRANSITIONS: dict[ChangeStatus, set[ChangeStatus]] = {
    ChangeStatus.NEW: {ChangeStatus.ACKNOWLEDGED, ChangeStatus.RESOLVED},
    ChangeStatus.ACKNOWLEDGED: {ChangeStatus.RESOLVED},
    ChangeStatus.RESOLVED: set(),
}


class ChangeLog:
    """Append-only log of detected changes. Only a change's status may be updated."""

    def __init__(self) -> None:
        self._changes: list[Change] = []
        self._index: dict[str, Change] = {}
        self._lock = threading.Lock()

    def append(self, change: Change) -> Change:
        with self._lock:
            self._changes.append(change)
            self._index[change.id] = change
        return change

    def get(self, change_id: str) -> Change:
        with self._lock:
            change = self._index.get(change_id)
        if change is None:
            raise NotFoundError("change", change_id)
        return change

    def all(self) -> list[Change]:
        """Every change in append order."""
        with self._lock:
            return list(self._changes)

    def recent(self, limit: int) -> list[Change]:
        """The ``limit`` most recently appended changes, newest first."""
        if limit <= 0:
            return []
        with self._lock:
            return list(reversed(self._changes[-limit:]))

    def for_entity(self, entity_id: str) -> list[Change]:
        with self._lock:
            return [change for change in self._changes if change.entity_id == entity_id]

    def update_status(self, change_id: str, status: ChangeStatus) -> Change:
        """Move a change forward in its workflow.

        Raises InvalidStateError for backwards or repeated transitions.
        """
        change = self.get(change_id)
        with self._lock:
            if status not in _ALLOWED_TRANSITIONS[change.status]:
                raise InvalidStateError("change", change_id, change.status, f"mark {status}")
            change.status = status
        logger.info("change_status_updated", change_id=change_id, status=status)
        return change

    def __len__(self) -> int:
        with self._lock:
            return len(self._changes)
