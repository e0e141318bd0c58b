"""
Periodic catalog runs

The build job always runs on ``catalog_fetch_cron``; the filter-only job is
registered only when ``catalog_filter_cron`` is set.
"""
import logging
from datetime import datetime
from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from epg_catalog.config import settings
from epg_catalog.services.catalog_fetch_service import fetch_and_process, filter_and_process


logger = logging.getLogger(__name__)

BUILD_JOB_ID = "catalog_build"
FILTER_JOB_ID = "catalog_filter"


class CatalogScheduler:
    """Cron-driven catalog builds and filter runs"""

    def __init__(self):
        self.scheduler: AsyncIOScheduler | None = None

    @staticmethod
    async def _run(job_id: str, run: Callable[[], Awaitable[dict]]) -> None:
        logger.info("Scheduled run '%s' triggered", job_id)
        try:
            result = await run()
        except Exception as e:
            logger.error(f"Scheduled run '{job_id}' raised: {e}", exc_info=True)
            return

        if "error" in result:
            logger.error(f"Scheduled run '{job_id}' failed: {result['error']}")
        elif result.get("status") == "skipped":
            logger.info("Scheduled run '%s' skipped: %s", job_id, result.get("message"))

    def _schedules(self) -> list[tuple[str, str, Callable[[], Awaitable[dict]]]]:
        schedules = [(BUILD_JOB_ID, settings.catalog_fetch_cron, fetch_and_process)]
        if settings.catalog_filter_cron:
            schedules.append((FILTER_JOB_ID, settings.catalog_filter_cron, filter_and_process))
        return schedules

    def start(self) -> None:
        """Register the configured jobs and start the scheduler"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        scheduler = AsyncIOScheduler(timezone="UTC")
        for job_id, cron, run in self._schedules():
            try:
                trigger = CronTrigger.from_crontab(cron)
            except (ValueError, KeyError) as exc:
                logger.error("Invalid cron expression '%s' for %s: %s", cron, job_id, exc)
                raise

            scheduler.add_job(
                self._run,
                trigger=trigger,
                args=(job_id, run),
                id=job_id,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=settings.catalog_fetch_misfire_grace_sec,
            )

        scheduler.start()
        self.scheduler = scheduler

        for job_id, next_time in self.next_run_times().items():
            logger.info("Scheduled %s, next run: %s", job_id, next_time.isoformat() if next_time else "unknown")

    def shutdown(self) -> None:
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
        self.scheduler = None

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self, job_id: str = BUILD_JOB_ID) -> datetime | None:
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(job_id)
        return job.next_run_time if job else None

    def next_run_times(self) -> dict[str, datetime | None]:
        """Next fire time of every registered job, by job id"""
        if not self.scheduler:
            return {}
        return {job.id: job.next_run_time for job in self.scheduler.get_jobs()}


catalog_scheduler = CatalogScheduler()
