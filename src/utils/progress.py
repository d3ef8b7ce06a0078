"""Per-cycle outcome tracking for the scheduled loops."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CycleTracker:
    """Counts what happened to each item visited during one loop iteration."""

    cycle: str
    total: int
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)
    start_time: float = field(default_factory=time.monotonic)

    def record_success(self) -> None:
        self.processed += 1
        self.successful += 1

    def record_failure(self, error: str) -> None:
        self.processed += 1
        self.failed += 1
        self.errors.append(error)

    def record_skip(self) -> None:
        self.processed += 1
        self.skipped += 1

    def increment(self, name: str, amount: int = 1) -> None:
        """Bump a named counter such as ``changes_detected``."""
        self.counters[name] = self.counters.get(name, 0) + amount

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.start_time

    def log_summary(self) -> None:
        """Emit one structured log line describing the finished cycle."""
        logger.info(
            "cycle_complete",
            cycle=self.cycle,
            total=self.total,
            successful=self.successful,
            failed=self.failed,
            skipped=self.skipped,
            elapsed=f"{self.elapsed_seconds:.2f}s",
            **self.counters,
        )

    def summary(self) -> dict[str, Any]:
        return {
            "cycle": self.cycle,
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_seconds": round(self.elapsed_seconds, 2),
            "errors": self.errors,
            **self.counters,
        }
