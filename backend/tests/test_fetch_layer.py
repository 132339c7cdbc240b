"""
Tests for the cache store and the fetch-or-cache layer.
"""
import asyncio
import threading
from datetime import timedelta

import pytest

from ipo_alert.core.errors import FetchError


def counting_fetcher(payload, calls):
    async def fetch():
        calls.append(1)
        return payload
    return fetch


def failing_fetcher(exc):
    async def fetch():
        raise exc
    return fetch


class TestCacheStore:
    def test_missing_key_returns_none(self, cache_store):
        assert cache_store.get("tickers") is None

    def test_upsert_replaces_payload_wholesale(self, cache_store, clock):
        cache_store.upsert("news", {"data": {"news": [1, 2]}}, clock.now())
        later = clock.advance(minutes=5)
        cache_store.upsert("news", {"data": {}}, later)

        cached = cache_store.get("news")
        assert cached.payload == {"data": {}}
        assert cached.fetched_at == later

    def test_fetched_at_is_utc_aware(self, cache_store, clock):
        cache_store.upsert("tickers", [], clock.now())
        cached = cache_store.get("tickers")
        assert cached.fetched_at.tzinfo is not None
        assert cached.fetched_at == clock.now()


class TestGetOrFetch:
    @pytest.mark.asyncio
    async def test_missing_entry_is_fetched_and_stored(self, fetch_layer, cache_store, clock):
        calls = []
        payload = await fetch_layer.get_or_fetch("tickers", counting_fetcher({"response": []}, calls))

        assert payload == {"response": []}
        assert len(calls) == 1
        assert cache_store.get("tickers").fetched_at == clock.now()

    @pytest.mark.asyncio
    async def test_fresh_entry_is_served_without_fetching(self, fetch_layer, clock):
        calls = []
        await fetch_layer.get_or_fetch("news", counting_fetcher("v1", calls), ttl=60)
        clock.advance(seconds=59)
        payload = await fetch_layer.get_or_fetch("news", counting_fetcher("v2", calls), ttl=60)

        assert payload == "v1"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_entry_exactly_ttl_old_is_refreshed(self, fetch_layer, clock):
        calls = []
        await fetch_layer.get_or_fetch("news", counting_fetcher("v1", calls), ttl=60)
        clock.advance(seconds=60)
        payload = await fetch_layer.get_or_fetch("news", counting_fetcher("v2", calls), ttl=60)

        assert payload == "v2"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_default_ttl_applies(self, fetch_layer, clock):
        calls = []
        await fetch_layer.get_or_fetch("news", counting_fetcher("v1", calls))
        clock.advance(seconds=299)
        assert await fetch_layer.get_or_fetch("news", counting_fetcher("v2", calls)) == "v1"
        clock.advance(seconds=1)
        assert await fetch_layer.get_or_fetch("news", counting_fetcher("v3", calls)) == "v3"

    @pytest.mark.asyncio
    async def test_ttl_accepts_timedelta(self, fetch_layer, clock):
        calls = []
        await fetch_layer.get_or_fetch("news", counting_fetcher("v1", calls), ttl=timedelta(minutes=1))
        clock.advance(seconds=30)
        assert await fetch_layer.get_or_fetch("news", counting_fetcher("v2", calls), ttl=timedelta(minutes=1)) == "v1"

    @pytest.mark.asyncio
    async def test_stamp_is_taken_before_the_fetch(self, fetch_layer, cache_store, clock):
        requested_at = clock.now()

        async def slow_fetch():
            clock.advance(seconds=10)
            return "payload"

        await fetch_layer.get_or_fetch("news", slow_fetch)
        assert cache_store.get("news").fetched_at == requested_at

    @pytest.mark.asyncio
    async def test_store_calls_run_off_the_event_loop(self, fetch_layer, cache_store):
        loop_thread = threading.get_ident()
        seen = []
        real_get, real_upsert = cache_store.get, cache_store.upsert

        def tracking_get(key):
            seen.append(threading.get_ident())
            return real_get(key)

        def tracking_upsert(key, payload, fetched_at):
            seen.append(threading.get_ident())
            return real_upsert(key, payload, fetched_at)

        cache_store.get = tracking_get
        cache_store.upsert = tracking_upsert
        await fetch_layer.get_or_fetch("news", counting_fetcher("v1", []))

        assert len(seen) == 2
        assert loop_thread not in seen


class TestFetchFailures:
    @pytest.mark.asyncio
    async def test_failure_without_cache_raises(self, fetch_layer, cache_store):
        with pytest.raises(FetchError) as exc_info:
            await fetch_layer.get_or_fetch("tickers", failing_fetcher(FetchError("tickers", status_code=503)))

        assert exc_info.value.status_code == 503
        assert cache_store.get("tickers") is None

    @pytest.mark.asyncio
    async def test_failure_leaves_stale_entry_untouched(self, fetch_layer, cache_store, clock):
        stored_at = clock.now()
        cache_store.upsert("tickers", "old", stored_at)
        clock.advance(minutes=10)

        with pytest.raises(FetchError):
            await fetch_layer.get_or_fetch("tickers", failing_fetcher(FetchError("tickers", status_code=500)))

        cached = cache_store.get("tickers")
        assert cached.payload == "old"
        assert cached.fetched_at == stored_at

    @pytest.mark.asyncio
    async def test_serve_stale_returns_expired_payload(self, fetch_layer, cache_store, clock):
        cache_store.upsert("tickers", "old", clock.now())
        clock.advance(minutes=10)

        payload = await fetch_layer.get_or_fetch(
            "tickers", failing_fetcher(FetchError("tickers", status_code=500)), serve_stale=True
        )
        assert payload == "old"

    @pytest.mark.asyncio
    async def test_serve_stale_without_entry_still_raises(self, fetch_layer):
        with pytest.raises(FetchError):
            await fetch_layer.get_or_fetch(
                "tickers", failing_fetcher(FetchError("tickers", cause="boom")), serve_stale=True
            )

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_fetch_error(self, fetch_layer):
        with pytest.raises(FetchError) as exc_info:
            await fetch_layer.get_or_fetch("news", failing_fetcher(KeyError("data")))

        assert exc_info.value.key == "news"
        assert "KeyError" in exc_info.value.cause

    @pytest.mark.asyncio
    async def test_deadline_exceeded_is_a_fetch_error(self, fetch_layer):
        fetch_layer.deadline_seconds = 0.01

        async def hanging():
            await asyncio.sleep(1)

        with pytest.raises(FetchError) as exc_info:
            await fetch_layer.get_or_fetch("news", hanging)
        assert "deadline" in exc_info.value.cause


class TestPeek:
    @pytest.mark.asyncio
    async def test_peek_ignores_age_and_never_fetches(self, fetch_layer, cache_store, clock):
        assert fetch_layer.peek("tickers") is None
        cache_store.upsert("tickers", {"response": []}, clock.now())
        clock.advance(days=3)
        assert fetch_layer.peek("tickers") == {"response": []}
