"""
Error types raised by the sync and dispatch engine.
"""
from typing import Optional


class FetchError(Exception):
    """Upstream feed unreachable, non-2xx, unparseable or past its deadline."""

    def __init__(self, key: str, status_code: Optional[int] = None, cause: Optional[str] = None):
        self.key = key
        self.status_code = status_code
        self.cause = cause
        detail = f"status {status_code}" if status_code is not None else (cause or "unknown error")
        super().__init__(f"Failed to fetch '{key}': {detail}")


class ScheduleJobError(Exception):
    """A scheduled job body could not complete. Caught at the job boundary."""

    def __init__(self, job_name: str, message: str):
        self.job_name = job_name
        super().__init__(f"{job_name}: {message}")


class DispatchProviderError(Exception):
    """The push provider could not be reached for a batch send."""


class PermanentTokenError(Exception):
    """The provider reports a device token as permanently undeliverable."""

    def __init__(self, token: str, reason: str):
        self.token = token
        self.reason = reason
        super().__init__(f"Token permanently undeliverable ({reason})")
