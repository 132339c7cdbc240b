"""
Scheduler service for market sync and alert jobs.
"""
from ipo_alert.services.scheduler.time_window import ScheduleWindow, allowed
from ipo_alert.services.scheduler.scheduler_service import (
    MarketScheduler,
    ScheduledJob,
    JobOutcome,
)
from ipo_alert.services.scheduler.jobs import (
    MarketJobs,
    register_default_jobs,
    build_message,
)

__all__ = [
    "ScheduleWindow",
    "allowed",
    "MarketScheduler",
    "ScheduledJob",
    "JobOutcome",
    "MarketJobs",
    "register_default_jobs",
    "build_message",
]
