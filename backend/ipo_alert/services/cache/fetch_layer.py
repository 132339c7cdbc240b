"""
Fetch-or-cache layer shared by scheduled jobs and request handlers.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Union
from ipo_alert.core.clock import Clock
from ipo_alert.core.errors import FetchError
from ipo_alert.services.cache.cache_store import CacheStore

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


class FetchLayer:
    """Returns cached payloads while fresh, otherwise fetches and stores them."""

    def __init__(
        self,
        cache_store: CacheStore,
        clock: Clock,
        default_ttl: Union[int, float, timedelta] = 300,
        deadline_seconds: Optional[float] = 15.0,
    ):
        """Initialize fetch layer.

        Args:
            cache_store: Store holding the last good payload per key
            clock: Source of "now" for TTL comparisons and fetched_at stamps
            default_ttl: TTL used when get_or_fetch is called without one (seconds or timedelta)
            deadline_seconds: Upper bound for a single fetcher call; None disables it
        """
        self.cache_store = cache_store
        self.clock = clock
        self.default_ttl = _as_timedelta(default_ttl)
        self.deadline_seconds = deadline_seconds

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Fetcher,
        ttl: Union[int, float, timedelta, None] = None,
        serve_stale: bool = False,
    ) -> Any:
        """Return the payload for key, fetching it when missing or expired.

        Args:
            key: Cache key
            fetcher: Zero-argument coroutine function performing the upstream call
            ttl: Maximum age of a cached payload (defaults to default_ttl)
            serve_stale: Return an expired payload instead of raising when the refresh fails

        Raises:
            FetchError: If the refresh failed and no payload may be served
        """
        ttl = self.default_ttl if ttl is None else _as_timedelta(ttl)
        now = self.clock.now()

        # Store calls use blocking sessions; keep them off the event loop
        cached = await asyncio.to_thread(self.cache_store.get, key)
        if cached and now - cached.fetched_at < ttl:
            return cached.payload

        try:
            payload = await self._call(key, fetcher)
        except FetchError as e:
            logger.warning(f"Refresh of '{key}' failed: {e}")
            if serve_stale and cached:
                logger.info(f"Serving stale '{key}' fetched at {cached.fetched_at.isoformat()}")
                return cached.payload
            raise

        # Stamp with the time the refresh was requested
        await asyncio.to_thread(self.cache_store.upsert, key, payload, now)
        return payload

    def peek(self, key: str) -> Any:
        """Return the cached payload for key regardless of age, without fetching."""
        cached = self.cache_store.get(key)
        return cached.payload if cached else None

    async def _call(self, key: str, fetcher: Fetcher) -> Any:
        try:
            if self.deadline_seconds is None:
                return await fetcher()
            return await asyncio.wait_for(fetcher(), timeout=self.deadline_seconds)
        except asyncio.TimeoutError:
            raise FetchError(key, cause=f"deadline of {self.deadline_seconds}s exceeded")
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(key, cause=f"{type(e).__name__}: {e}") from e


def _as_timedelta(value: Union[int, float, timedelta]) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=value)
