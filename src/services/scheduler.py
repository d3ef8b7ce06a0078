"""Periodic job scheduling for the monitoring loops."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.utils.clock import Clock

logger = structlog.get_logger(__name__)


@dataclass
class ScheduledJob:
    name: str
    interval: timedelta
    func: Callable[[], object]
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    failures: int = 0


class MonitoringScheduler:
    """Runs named jobs on fixed intervals, one at a time.

    ``start()`` hands the jobs to an APScheduler BackgroundScheduler with a
    single worker thread. ``run_pending()`` drives the same jobs from the
    injected clock instead, for tests and one-shot runs.
    """

    def __init__(self, clock: Clock) -> None:
        self.clock = clock
        self.jobs: dict[str, ScheduledJob] = {}
        self._scheduler: BackgroundScheduler | None = None

    def add_job(
        self,
        name: str,
        interval_seconds: float,
        func: Callable[[], object],
        run_immediately: bool = True,
    ) -> ScheduledJob:
        if interval_seconds <= 0:
            msg = "interval_seconds must be greater than 0"
            raise ValueError(msg)
        interval = timedelta(seconds=interval_seconds)
        now = self.clock.now()
        job = ScheduledJob(
            name=name,
            interval=interval,
            func=func,
            next_run_at=now if run_immediately else now + interval,
        )
        self.jobs[name] = job
        return job

    def run_pending(self) -> list[str]:
        """Run every job that is due on the clock. Returns names of jobs that ran.

        A job that fell several intervals behind runs once.
        """
        ran = []
        for job in list(self.jobs.values()):
            now = self.clock.now()
            if job.next_run_at is not None and job.next_run_at > now:
                continue
            self._run_job(job)
            job.next_run_at = now + job.interval
            ran.append(job.name)
        return ran

    def run_all(self) -> None:
        """Run every job once in registration order, regardless of schedule."""
        for job in list(self.jobs.values()):
            self._run_job(job)

    def start(self) -> None:
        """Start background execution on wall-clock time."""
        if self._scheduler is not None:
            return
        scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            timezone=UTC,
        )
        for job in self.jobs.values():
            scheduler.add_job(
                self._run_job,
                IntervalTrigger(seconds=job.interval.total_seconds()),
                args=[job],
                id=job.name,
                name=job.name,
                max_instances=1,
                coalesce=True,
                next_run_time=datetime.now(UTC),
                replace_existing=True,
            )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "scheduler_started",
            jobs={job.name: job.interval.total_seconds() for job in self.jobs.values()},
        )

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("scheduler_stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def _run_job(self, job: ScheduledJob) -> None:
        job.last_run_at = self.clock.now()
        try:
            job.func()
        except Exception as exc:
            job.failures += 1
            logger.exception("job_failed", job=job.name, error=str(exc))
