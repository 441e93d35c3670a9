"""Scheduler service for periodic cache maintenance."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from marketmatch.logging import get_logger

logger = get_logger(__name__, component="scheduler")

SWEEP_JOB_ID = "cache-sweep"


class SchedulerService:
    """
    Wraps APScheduler to run the cache sweep at a fixed interval.

    Expired cache entries are already invisible to readers; the sweep only
    reclaims their memory. Runs on a BackgroundScheduler thread so request
    handling is never blocked.
    """

    def __init__(
        self,
        sweep_callable: Callable[[], int],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            sweep_callable: Function returning the number of entries purged
                (e.g., CacheRegistry.purge_expired)
            interval_seconds: Interval between sweeps in seconds
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.sweep_callable = sweep_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,  # Prevent overlapping sweeps
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register the sweep job and start the scheduler thread.

        The first sweep runs one interval after startup.
        """
        trigger = IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc)

        self.scheduler.add_job(
            func=self.run_sweep,
            trigger=trigger,
            id=SWEEP_JOB_ID,
            name="Cache sweep",
            replace_existing=True,
        )
        self.scheduler.start()

        next_run = self.get_next_run_time()
        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat() if next_run else None,
            },
        )

    def run_sweep(self) -> int:
        """Run one sweep. Failures are logged; the next interval retries."""
        try:
            purged = self.sweep_callable()
        except Exception as e:
            logger.error(
                f"Cache sweep failed: {e}",
                exc_info=True,
                extra={"event": "scheduler.sweep.failed", "error_type": type(e).__name__},
            )
            return 0

        logger.debug(
            f"Cache sweep purged {purged} entries",
            extra={"event": "scheduler.sweep.completed", "purged": purged},
        )
        return purged

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for a running sweep to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self) -> int:
        """Run a sweep synchronously in the current thread."""
        logger.info("Triggering immediate cache sweep", extra={"event": "scheduler.trigger_now"})
        return self.run_sweep()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        """Next scheduled sweep, or None if not scheduled."""
        job = self.scheduler.get_job(SWEEP_JOB_ID)
        return job.next_run_time if job else None
