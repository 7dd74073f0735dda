"""Recurring check scheduling using APScheduler."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = structlog.get_logger(__name__)


CHECK_JOB_ID = "scheduled_check"
DEFAULT_INTERVAL_SECONDS = 30 * 60


class CheckScheduler:
    """Fires the check-and-notify job on a fixed interval."""

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self.scheduler = scheduler or AsyncIOScheduler()
        self.running = False

    def add_interval_job(
        self,
        func: Callable[[], Awaitable[Any]],
        seconds: int = DEFAULT_INTERVAL_SECONDS,
        job_id: str = CHECK_JOB_ID,
    ):
        if self.scheduler.get_job(job_id) is not None:
            logger.warning("Job already exists, replacing", job_id=job_id)
            self.scheduler.remove_job(job_id)

        job = self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=job_id,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Added interval job", job_id=job_id, interval_seconds=seconds)
        return job

    def start(self) -> None:
        """Start firing jobs; must be called with the asyncio loop running."""
        if self.running:
            logger.warning("Scheduler already running")
            return
        self.scheduler.start()
        self.running = True
        logger.info("Check scheduler started")

    def stop(self) -> None:
        if not self.running:
            return
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Check scheduler stopped")
