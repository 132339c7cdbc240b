"""
Clock abstraction used for TTL checks, alert timestamps and market-hours gating.
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo


class Clock:
    """Source of the current instant."""

    def now(self) -> datetime:
        """Current instant as a timezone-aware UTC datetime."""
        raise NotImplementedError

    def local_now(self, tz_name: str) -> datetime:
        """Current instant converted to the given IANA timezone."""
        return self.now().astimezone(ZoneInfo(tz_name))


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant; advance it manually in tests."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant.astimezone(timezone.utc)

    def set(self, instant: datetime):
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward by a timedelta built from kwargs (seconds=..., minutes=...)."""
        self._instant = self._instant + timedelta(**kwargs)
        return self.now()


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
