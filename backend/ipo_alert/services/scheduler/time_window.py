"""
Calendar gate for scheduled jobs: allowed weekdays plus a time-of-day window.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet
from zoneinfo import ZoneInfo
from ipo_alert.core.clock import Clock

MINUTES_PER_DAY = 24 * 60
DAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


@dataclass(frozen=True)
class ScheduleWindow:
    """Weekdays (Monday=0) and [start_minute, end_minute) in a timezone."""
    allowed_days: FrozenSet[int]
    start_minute: int
    end_minute: int
    timezone: str

    def __post_init__(self):
        if not (0 <= self.start_minute <= MINUTES_PER_DAY and 0 <= self.end_minute <= MINUTES_PER_DAY):
            raise ValueError(f"Window minutes must be within a day: {self.start_minute}-{self.end_minute}")
        if self.start_minute > self.end_minute:
            raise ValueError(f"Window start {self.start_minute} is after end {self.end_minute}")
        if any(day not in range(7) for day in self.allowed_days):
            raise ValueError(f"Weekdays must be 0-6: {sorted(self.allowed_days)}")
        ZoneInfo(self.timezone)  # fail fast on unknown zone names
        object.__setattr__(self, "allowed_days", frozenset(self.allowed_days))

    def local_now(self, clock: Clock) -> datetime:
        return clock.local_now(self.timezone)

    def is_open(self, clock: Clock) -> bool:
        return allowed(self.local_now(clock), self)

    def describe(self) -> str:
        days = ", ".join(DAY_NAMES[d] for d in sorted(self.allowed_days))
        return f"{_hhmm(self.start_minute)}-{_hhmm(self.end_minute)} {self.timezone} on {days}"


def minutes_since_midnight(value: datetime) -> int:
    return value.hour * 60 + value.minute


def allowed(now_local: datetime, window: ScheduleWindow) -> bool:
    """True when now_local falls on an allowed weekday inside [start, end).

    now_local is taken as already expressed in the window's timezone.
    """
    if now_local.weekday() not in window.allowed_days:
        return False
    return window.start_minute <= minutes_since_midnight(now_local) < window.end_minute


def skip_reason(now_local: datetime, window: ScheduleWindow) -> str:
    """Human-readable reason a closed window rejected now_local."""
    day = DAY_NAMES[now_local.weekday()]
    if now_local.weekday() not in window.allowed_days:
        return f"{day} is not a business day"
    return f"{now_local.strftime('%H:%M')} is outside {_hhmm(window.start_minute)}-{_hhmm(window.end_minute)}"


def _hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
