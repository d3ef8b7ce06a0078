"""Competitor scan cycle: fetch, diff, classify, alert, rescore."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import structlog

from src.core.errors import FetchError
from src.domains.market_watch.core.change_detection import detect_changes
from src.domains.market_watch.core.threat import compute_threat_level
from src.models.change import ChangeStatus
from src.models.tracked_entity import DataSource, TrackedEntity
from src.utils.ids import new_id
from src.utils.progress import CycleTracker

if TYPE_CHECKING:
    from collections.abc import Iterable

    from src.domains.alerts.services.alert_dispatcher import AlertDispatcher
    from src.domains.market_watch.repositories.change_log import ChangeLog
    from src.domains.market_watch.repositories.entity_repository import EntityRepository
    from src.domains.market_watch.repositories.snapshot_repository import SnapshotRepository
    from src.models.change import Change
    from src.models.source_snapshot import SourceSnapshot
    from src.models.tracked_entity import ThreatLevel
    from src.services.protocols import SourceFetcher
    from src.utils.clock import Clock

logger = structlog.get_logger(__name__)


class MarketWatchService:
    """Manages tracked competitors and runs the periodic scan cycle."""

    def __init__(
        self,
        entity_repo: EntityRepository,
        snapshot_repo: SnapshotRepository,
        change_log: ChangeLog,
        fetcher: SourceFetcher,
        alert_dispatcher: AlertDispatcher,
        clock: Clock,
        fetch_timeout_seconds: float = 10.0,
        threat_window_days: int = 7,
    ) -> None:
        self.entity_repo = entity_repo
        self.snapshot_repo = snapshot_repo
        self.change_log = change_log
        self.fetcher = fetcher
        self.alert_dispatcher = alert_dispatcher
        self.clock = clock
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.threat_window = timedelta(days=threat_window_days)
        # Fetches abandoned after a timeout, per entity, until their threads return
        self._inflight: dict[str, dict[DataSource, Future]] = {}
        self._inflight_lock = threading.Lock()

    def register_entity(
        self,
        name: str,
        sources: Iterable[DataSource | str],
        category: str = "general",
        location: str | None = None,
        entity_id: str | None = None,
    ) -> TrackedEntity:
        """Start tracking a competitor. It is scanned from the next cycle on."""
        entity = TrackedEntity(
            id=entity_id or new_id("ent"),
            name=name,
            category=category,
            location=location,
            sources={DataSource(source) for source in sources},
            created_at=self.clock.now(),
        )
        return self.entity_repo.add(entity)

    def add_entity(self, entity: TrackedEntity) -> TrackedEntity:
        return self.entity_repo.add(entity)

    def deactivate_entity(self, entity_id: str) -> TrackedEntity:
        """Stop scanning an entity. Its history is kept."""
        entity = self.entity_repo.set_active(entity_id, False)
        logger.info("entity_deactivated", entity_id=entity_id)
        return entity

    def reactivate_entity(self, entity_id: str) -> TrackedEntity:
        entity = self.entity_repo.set_active(entity_id, True)
        logger.info("entity_reactivated", entity_id=entity_id)
        return entity

    def scan_all(self) -> dict[str, Any]:
        """Run one scan cycle over every active entity.

        A failing or slow source skips its entity for this cycle; nothing
        propagates past the cycle. Returns summary stats dict.
        """
        entities = self.entity_repo.list_active()
        tracker = CycleTracker(cycle="entity_scan", total=len(entities))

        for entity in entities:
            try:
                changes = self.scan_entity(entity)
            except FetchError as exc:
                logger.warning(
                    "entity_scan_failed",
                    entity_id=entity.id,
                    source=exc.source,
                    error=exc.reason,
                )
                tracker.record_failure(f"Entity {entity.id}: {exc}")
            except Exception as exc:
                logger.error("entity_scan_failed", entity_id=entity.id, error=str(exc))
                tracker.record_failure(f"Entity {entity.id}: {exc}")
            else:
                tracker.record_success()
                tracker.increment("changes_detected", len(changes))

            # Aged-out changes must lower the level even without a new change
            self._refresh_threat(entity.id)

        tracker.log_summary()
        return tracker.summary()

    def scan_entity(self, entity: TrackedEntity) -> list[Change]:
        """Fetch, diff and record one entity. Raises FetchError when any source fails."""
        current = self._fetch_sources(entity)
        now = self.clock.now()
        previous = self.snapshot_repo.get_latest_for_entity(entity.id)

        changes = detect_changes(entity, previous, current, now)
        self.snapshot_repo.store_many(list(current.values()))
        self.entity_repo.mark_scanned(entity.id, now)

        for change in changes:
            self.change_log.append(change)
            logger.info(
                "change_detected",
                entity_id=entity.id,
                change_id=change.id,
                change_type=str(change.change_type),
                impact=str(change.impact),
                delta=change.delta,
            )
            self.alert_dispatcher.dispatch_for_change(change, entity_name=entity.name)
            self._refresh_threat(entity.id)

        return changes

    def refresh_threat_levels(self) -> None:
        for entity in self.entity_repo.list_all():
            self._refresh_threat(entity.id)

    def get_competitors(self) -> list[TrackedEntity]:
        return self.entity_repo.list_all()

    def get_recent_changes(self, limit: int = 50) -> list[Change]:
        """Most recent changes, newest first."""
        return self.change_log.recent(limit)

    def get_latest_ratings(self) -> dict[str, float]:
        """Mean of the latest per-source ratings for each active competitor that has one."""
        ratings: dict[str, float] = {}
        for entity in self.entity_repo.list_active():
            readings = [
                rating
                for snapshot in self.snapshot_repo.get_latest_for_entity(entity.id).values()
                if (rating := snapshot.numeric("rating")) is not None
            ]
            if readings:
                ratings[entity.id] = sum(readings) / len(readings)
        return ratings

    def acknowledge_change(self, change_id: str) -> Change:
        return self.change_log.update_status(change_id, ChangeStatus.ACKNOWLEDGED)

    def resolve_change(self, change_id: str) -> Change:
        return self.change_log.update_status(change_id, ChangeStatus.RESOLVED)

    def shutdown(self) -> None:
        """Cancel abandoned fetches that have not started. Running ones are left to finish."""
        with self._inflight_lock:
            for pending in self._inflight.values():
                for future in pending.values():
                    future.cancel()
            self._inflight.clear()

    def _stalled_sources(self, entity_id: str) -> list[str]:
        with self._inflight_lock:
            pending = {
                source: future
                for source, future in self._inflight.get(entity_id, {}).items()
                if not future.done()
            }
            if pending:
                self._inflight[entity_id] = pending
            else:
                self._inflight.pop(entity_id, None)
        return sorted(str(source) for source in pending)

    def _fetch_sources(self, entity: TrackedEntity) -> dict[DataSource, SourceSnapshot]:
        stalled = self._stalled_sources(entity.id)
        if stalled:
            raise FetchError(",".join(stalled), entity.id, "previous fetch still running")

        # Pool per scan: a hung fetch only ever holds this entity's workers
        executor = ThreadPoolExecutor(
            max_workers=max(1, len(entity.sources)), thread_name_prefix=f"fetch-{entity.id}"
        )
        futures = {
            executor.submit(self.fetcher.fetch, entity, source): source
            for source in sorted(entity.sources)
        }
        snapshots: dict[DataSource, SourceSnapshot] = {}
        try:
            for future in as_completed(futures, timeout=self.fetch_timeout_seconds):
                source = futures[future]
                try:
                    snapshot = future.result()
                except FetchError:
                    raise
                except Exception as exc:
                    raise FetchError(str(source), entity.id, str(exc)) from exc
                if snapshot.entity_id != entity.id or snapshot.source != source:
                    raise FetchError(str(source), entity.id, "snapshot does not match request")
                snapshots[source] = snapshot
        except FutureTimeoutError as exc:
            pending = sorted(str(source) for future, source in futures.items() if not future.done())
            raise FetchError(
                ",".join(pending), entity.id, f"timed out after {self.fetch_timeout_seconds}s"
            ) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            abandoned = {source: future for future, source in futures.items() if not future.done()}
            if abandoned:
                with self._inflight_lock:
                    self._inflight[entity.id] = abandoned
        return snapshots

    def _refresh_threat(self, entity_id: str) -> ThreatLevel:
        level = compute_threat_level(
            self.change_log.for_entity(entity_id),
            entity_id,
            self.clock.now(),
            self.threat_window,
        )
        entity = self.entity_repo.get(entity_id)
        if entity.threat_level != level:
            logger.info(
                "threat_level_changed",
                entity_id=entity_id,
                previous=str(entity.threat_level),
                current=str(level),
            )
            self.entity_repo.update_threat_level(entity_id, level)
        return level
