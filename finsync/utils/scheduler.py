"""
Scheduler Service
Named timers on an APScheduler AsyncIOScheduler, so they run on the app's event loop.
Each job id is an independent timer that can be cancelled on its own.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class SyncScheduler:
    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None) -> None:
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        if self._scheduler.running:
            logger.warning("Scheduler is already running")
            return
        self._scheduler.start()
        logger.info("Scheduler started")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def every(self, job_id: str, seconds: float, func: Callable, *args: Any) -> None:
        """Run func every `seconds`; the first run is one full interval from now."""
        self._scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            args=list(args),
            id=job_id,
            name=job_id,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.info(f"Scheduled recurring job {job_id} every {seconds}s")

    def once(self, job_id: str, seconds: float, func: Callable, *args: Any) -> None:
        """Run func once after `seconds`, replacing any pending job with the same id."""
        run_date = datetime.now(timezone.utc) + timedelta(seconds=seconds)
        self._scheduler.add_job(
            func,
            trigger=DateTrigger(run_date=run_date),
            args=list(args),
            id=job_id,
            name=job_id,
            replace_existing=True,
            misfire_grace_time=None,
        )

    def cancel(self, job_id: str) -> bool:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            return False
        return True

    def has_job(self, job_id: str) -> bool:
        return self._scheduler.get_job(job_id) is not None

    def job_ids(self) -> List[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def get_status(self) -> dict:
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "next_run": next_run.isoformat() if next_run else None,
            })
        return {"running": self._scheduler.running, "jobs": jobs}
