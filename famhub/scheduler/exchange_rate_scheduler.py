"""
FamHub - Exchange Rate Scheduler

Runs the periodic refresh of the rate store:
- cron job from EXCHANGE_RATE_UPDATE_CRON (every 6 hours by default)
- one-shot job a few seconds after startup so a fresh process has rates
"""
from datetime import datetime, timedelta
from typing import Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from loguru import logger

from famhub.config import Settings, settings as default_settings
from famhub.services.exchange_rate_service import ExchangeRateService, UpdateResult


UPDATE_JOB_ID = "exchange_rate_update"
STARTUP_JOB_ID = "exchange_rate_startup"


class ExchangeRateScheduler:
    """
    Background refresh of exchange rates.

    Overlap with a forced update is handled by the service lock: a tick that
    fires mid-refresh comes back SKIPPED.
    """

    def __init__(self, service: ExchangeRateService, settings: Optional[Settings] = None):
        self.service = service
        self.settings = settings or default_settings
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._registered_jobs: dict[str, dict] = {}
        self.last_run_at: Optional[datetime] = None

    def initialize(self) -> None:
        """Initialize the scheduler with job stores and executors."""
        jobstores = {
            'default': MemoryJobStore()
        }
        executors = {
            'default': AsyncIOExecutor()
        }
        job_defaults = {
            'coalesce': True,
            'max_instances': 1,
            'misfire_grace_time': 60 * 10
        }

        self.scheduler = AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone=self.settings.TIMEZONE
        )

        cron = self.settings.EXCHANGE_RATE_UPDATE_CRON
        self.scheduler.add_job(
            self.run_update_job,
            trigger=CronTrigger.from_crontab(cron, timezone=self.settings.TIMEZONE),
            id=UPDATE_JOB_ID,
            name="Exchange rate refresh",
            replace_existing=True,
        )
        self._registered_jobs[UPDATE_JOB_ID] = {
            'type': 'cron',
            'schedule': cron,
        }

        logger.info(f"Exchange rate scheduler initialized (cron '{cron}')")

    def start(self) -> None:
        """Start the scheduler and queue the startup refresh."""
        if not self.scheduler:
            self.initialize()

        if self._is_running:
            return

        delay = self.settings.EXCHANGE_RATE_STARTUP_DELAY_SECONDS
        self.scheduler.add_job(
            self.run_update_job,
            trigger=DateTrigger(run_date=datetime.now() + timedelta(seconds=delay)),
            id=STARTUP_JOB_ID,
            name="Exchange rate startup refresh",
            replace_existing=True,
        )
        self._registered_jobs[STARTUP_JOB_ID] = {
            'type': 'once',
            'schedule': f'{delay}s after startup',
        }

        self.scheduler.start()
        self._is_running = True
        logger.info(f"Exchange rate scheduler started, first refresh in {delay}s")

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self.scheduler and self._is_running:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("Exchange rate scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def run_update_job(self) -> Optional[UpdateResult]:
        """
        Job body. Never raises: a failed refresh leaves the stored rates in
        place and the next tick tries again.
        """
        self.last_run_at = datetime.utcnow()
        logger.info("Running scheduled exchange rate update...")
        try:
            result = await self.service.update_exchange_rates()
        except Exception:
            logger.exception("Scheduled exchange rate update failed")
            return None

        if result.is_total_failure:
            logger.warning(
                f"Scheduled update fetched nothing, fallback state: "
                f"{result.fallback_state.value if result.fallback_state else 'n/a'}"
            )
        return result

    def get_jobs_status(self) -> dict:
        """Get status of all registered jobs."""
        status = {
            'is_running': self._is_running,
            'is_updating': self.service.is_updating,
            'last_run_at': self.last_run_at.isoformat() if self.last_run_at else None,
            'jobs': {}
        }

        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, 'next_run_time', None)
                status['jobs'][job.id] = {
                    'name': job.name,
                    'next_run': next_run.isoformat() if next_run else None,
                    **self._registered_jobs.get(job.id, {})
                }

        return status
