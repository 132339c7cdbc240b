"""
Scheduler service for market sync jobs using APScheduler.

Each named job fires on a cron trigger in the market timezone. A firing is
skipped when the job's window is closed or when the previous run of the same
job is still in flight. Job failures are logged here and never reach the
scheduler loop.
"""
import enum
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from ipo_alert.core.clock import Clock
from ipo_alert.services.scheduler.time_window import ScheduleWindow, allowed, skip_reason

logger = logging.getLogger(__name__)

JobBody = Callable[[], Awaitable[object]]


class JobOutcome(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED_WINDOW = "skipped_window"
    SKIPPED_IN_FLIGHT = "skipped_in_flight"


@dataclass
class ScheduledJob:
    """A named trigger: cron fields, optional gate and the coroutine to run."""
    name: str
    body: JobBody
    cron: Dict[str, str]
    window: Optional[ScheduleWindow] = None


class MarketScheduler:
    """Named cron jobs on an AsyncIOScheduler with gating and re-entrancy protection."""

    def __init__(self, clock: Clock, timezone: str, scheduler: Optional[AsyncIOScheduler] = None):
        self.clock = clock
        self.timezone = timezone
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone)
        self._jobs: Dict[str, ScheduledJob] = {}
        self._in_flight: set[str] = set()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def add_job(
        self,
        name: str,
        body: JobBody,
        cron: Dict[str, str],
        window: Optional[ScheduleWindow] = None,
    ) -> ScheduledJob:
        """Register (or replace) a named job.

        Args:
            name: Unique job name, also used as the APScheduler job id
            body: Coroutine function run on each allowed firing
            cron: CronTrigger fields, e.g. {"minute": "*/5"} or {"hour": "10,20", "minute": "0"}
            window: Optional gate checked on every firing
        """
        job = ScheduledJob(name=name, body=body, cron=dict(cron), window=window)
        self._jobs[name] = job

        trigger = CronTrigger(timezone=self.timezone, **job.cron)
        self._scheduler.add_job(
            self.run_job,
            trigger=trigger,
            args=[name],
            id=name,
            name=name,
            replace_existing=True,
            max_instances=1,  # Prevent overlapping executions
            coalesce=True,
            misfire_grace_time=60,
        )
        gate = f", window {window.describe()}" if window else ""
        logger.info(f"Added job {name} (cron {job.cron}{gate})")
        return job

    def job_names(self) -> List[str]:
        return sorted(self._jobs)

    def get_job(self, name: str) -> ScheduledJob:
        return self._jobs[name]

    def is_in_flight(self, name: str) -> bool:
        return name in self._in_flight

    async def run_job(self, name: str) -> JobOutcome:
        """Run one firing of a job. Never raises for job failures."""
        job = self._jobs[name]

        if name in self._in_flight:
            logger.warning(f"⏭️ Skipping {name} - previous run still in progress")
            return JobOutcome.SKIPPED_IN_FLIGHT

        if job.window is not None:
            now_local = job.window.local_now(self.clock)
            if not allowed(now_local, job.window):
                logger.info(f"⏭️ Skipping {name} - {skip_reason(now_local, job.window)}")
                return JobOutcome.SKIPPED_WINDOW

        self._in_flight.add(name)
        started = time.monotonic()
        try:
            await job.body()
            logger.info(f"✅ Job {name} finished in {time.monotonic() - started:.2f}s")
            return JobOutcome.COMPLETED
        except Exception as e:
            logger.error(f"❌ Job {name} failed: {e}", exc_info=True)
            return JobOutcome.FAILED
        finally:
            self._in_flight.discard(name)

    def start(self):
        """Start the scheduler."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info(f"✅ Scheduler started with {len(self._jobs)} jobs ({self.timezone})")
        else:
            logger.debug("Scheduler already running")

    def shutdown(self):
        """Stop the scheduler without waiting for running jobs."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
