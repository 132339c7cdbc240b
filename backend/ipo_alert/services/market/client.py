"""
HTTP client for the upstream market-data feeds.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional
import httpx
from ipo_alert.core.errors import FetchError

logger = logging.getLogger(__name__)


class MarketDataClient:
    """GETs JSON from the configured feeds with a shared httpx.AsyncClient."""

    def __init__(
        self,
        sources: Dict[str, str],
        indices_base_url: str,
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.sources = sources
        self.indices_base_url = indices_base_url.rstrip('/')
        self.timeout = timeout
        self._client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
                follow_redirects=True,
            )
        return self._client

    async def get_json(self, key: str, url: str) -> Any:
        """GET url and decode JSON.

        Raises:
            FetchError: On transport errors, non-2xx responses or invalid JSON
        """
        try:
            response = await self._get_client().get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise FetchError(key, status_code=e.response.status_code, cause=str(e)) from e
        except httpx.HTTPError as e:
            raise FetchError(key, cause=f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise FetchError(key, cause=f"invalid JSON: {e}") from e

    def fetcher(self, source: str) -> Callable[[], Awaitable[Any]]:
        """Zero-argument coroutine function fetching a named source."""
        url = self.sources[source]

        async def fetch() -> Any:
            logger.debug(f"Fetching {source} from {url}")
            return await self.get_json(source, url)

        return fetch

    def indices_fetcher(self, range_: str) -> Callable[[], Awaitable[Any]]:
        url = f"{self.indices_base_url}/{range_}"

        async def fetch() -> Any:
            return await self.get_json(f"indices-{range_}", url)

        return fetch

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
