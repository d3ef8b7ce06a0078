"""In-memory repository for tracked entities."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

from src.core.errors import NotFoundError

if TYPE_CHECKING:
    from datetime import datetime

    from src.models.tracked_entity import ThreatLevel, TrackedEntity

logger = structlog.get_logger(__name__)


class EntityRepository:
    """Repository for tracked entity lifecycle. Entities are never deleted."""

    def __init__(self) -> None:
        self._entities: dict[str, TrackedEntity] = {}
        self._lock = threading.Lock()

    def add(self, entity: TrackedEntity) -> TrackedEntity:
        """Store a new entity. Returns the stored entity."""
        with self._lock:
            self._entities[entity.id] = entity
        logger.info("entity_registered", entity_id=entity.id, name=entity.name)
        return entity

    def get(self, entity_id: str) -> TrackedEntity:
        """Get an entity by ID. Raises NotFoundError if unknown."""
        with self._lock:
            entity = self._entities.get(entity_id)
        if entity is None:
            raise NotFoundError("entity", entity_id)
        return entity

    def list_all(self) -> list[TrackedEntity]:
        """All entities in registration order."""
        with self._lock:
            return list(self._entities.values())

    def list_active(self) -> list[TrackedEntity]:
        with self._lock:
            return [entity for entity in self._entities.values() if entity.is_active]

    def set_active(self, entity_id: str, is_active: bool) -> TrackedEntity:
        entity = self.get(entity_id)
        with self._lock:
            entity.is_active = is_active
        return entity

    def update_threat_level(self, entity_id: str, threat_level: ThreatLevel) -> TrackedEntity:
        entity = self.get(entity_id)
        with self._lock:
            entity.threat_level = threat_level
        return entity

    def mark_scanned(self, entity_id: str, scanned_at: datetime) -> TrackedEntity:
        entity = self.get(entity_id)
        with self._lock:
            entity.last_scanned_at = scanned_at
        return entity
