"""
Tests for MarketScheduler gating, re-entrancy and failure isolation.
"""
import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from apscheduler.triggers.cron import CronTrigger

from ipo_alert.core.clock import Clock, FixedClock
from ipo_alert.services.scheduler import (
    JobOutcome,
    MarketScheduler,
    ScheduleWindow,
    register_default_jobs,
)

KATHMANDU = ZoneInfo("Asia/Kathmandu")


class SteppingClock(Clock):
    """Returns the given instants in order, then keeps returning the last one."""

    def __init__(self, *instants):
        self._instants = list(instants)
        self.reads = 0

    def now(self):
        self.reads += 1
        if len(self._instants) > 1:
            return self._instants.pop(0)
        return self._instants[0]


@pytest.fixture
def scheduler(clock):
    return MarketScheduler(clock, "Asia/Kathmandu")


@pytest.fixture
def market_hours():
    return ScheduleWindow(frozenset({6, 0, 1, 2, 3}), 660, 900, "Asia/Kathmandu")


class TestRunJob:
    @pytest.mark.asyncio
    async def test_ungated_job_runs(self, scheduler):
        calls = []

        async def body():
            calls.append("ran")

        scheduler.add_job("news_refresh", body, {"hour": "8,14,20", "minute": "0"})
        assert await scheduler.run_job("news_refresh") == JobOutcome.COMPLETED
        assert calls == ["ran"]

    @pytest.mark.asyncio
    async def test_closed_window_skips_body(self, scheduler, clock, market_hours):
        calls = []

        async def body():
            calls.append("ran")

        scheduler.add_job("price_alert_check", body, {"minute": "*/2"}, market_hours)
        clock.set(datetime(2025, 9, 19, 12, 0, tzinfo=KATHMANDU))  # Friday

        assert await scheduler.run_job("price_alert_check") == JobOutcome.SKIPPED_WINDOW
        assert calls == []

    @pytest.mark.asyncio
    async def test_window_is_evaluated_at_firing_time(self, scheduler, clock, market_hours):
        calls = []

        async def body():
            calls.append(clock.local_now("Asia/Kathmandu").strftime("%H:%M"))

        scheduler.add_job("market_data_refresh", body, {"minute": "*/5"}, market_hours)
        clock.set(datetime(2025, 9, 15, 15, 0, tzinfo=KATHMANDU))
        assert await scheduler.run_job("market_data_refresh") == JobOutcome.SKIPPED_WINDOW

        clock.set(datetime(2025, 9, 15, 14, 55, tzinfo=KATHMANDU))
        assert await scheduler.run_job("market_data_refresh") == JobOutcome.COMPLETED
        assert calls == ["14:55"]

    @pytest.mark.asyncio
    async def test_gate_reads_the_clock_once(self, market_hours):
        # The second read would land on the closing minute
        clock = SteppingClock(
            datetime(2025, 9, 15, 14, 59, 59, tzinfo=KATHMANDU),
            datetime(2025, 9, 15, 15, 0, 0, tzinfo=KATHMANDU),
        )
        scheduler = MarketScheduler(clock, "Asia/Kathmandu")

        async def body():
            pass

        scheduler.add_job("price_alert_check", body, {"minute": "*/2"}, market_hours)

        assert await scheduler.run_job("price_alert_check") == JobOutcome.COMPLETED
        assert clock.reads == 1

    @pytest.mark.asyncio
    async def test_overlapping_firing_is_skipped(self, scheduler):
        started = asyncio.Event()
        release = asyncio.Event()
        runs = []

        async def slow_body():
            runs.append(1)
            started.set()
            await release.wait()

        scheduler.add_job("ipo_check", slow_body, {"hour": "10,20", "minute": "0"})
        first = asyncio.create_task(scheduler.run_job("ipo_check"))
        await started.wait()

        assert scheduler.is_in_flight("ipo_check")
        assert await scheduler.run_job("ipo_check") == JobOutcome.SKIPPED_IN_FLIGHT

        release.set()
        assert await first == JobOutcome.COMPLETED
        assert not scheduler.is_in_flight("ipo_check")
        assert len(runs) == 1

    @pytest.mark.asyncio
    async def test_in_flight_guard_is_per_job(self, scheduler):
        release = asyncio.Event()
        started = asyncio.Event()
        other_runs = []

        async def slow_body():
            started.set()
            await release.wait()

        async def quick_body():
            other_runs.append(1)

        scheduler.add_job("ipo_check", slow_body, {"minute": "0"})
        scheduler.add_job("news_refresh", quick_body, {"minute": "0"})
        first = asyncio.create_task(scheduler.run_job("ipo_check"))
        await started.wait()

        assert await scheduler.run_job("news_refresh") == JobOutcome.COMPLETED
        release.set()
        await first
        assert other_runs == [1]

    @pytest.mark.asyncio
    async def test_failure_is_contained_and_clears_flag(self, scheduler):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("upstream exploded")

        scheduler.add_job("market_status_check", flaky, {"minute": "*/5"})

        assert await scheduler.run_job("market_status_check") == JobOutcome.FAILED
        assert not scheduler.is_in_flight("market_status_check")
        assert await scheduler.run_job("market_status_check") == JobOutcome.COMPLETED


class TestRegistration:
    def test_add_job_registers_cron_trigger(self, scheduler):
        async def body():
            pass

        scheduler.add_job("news_refresh", body, {"hour": "8,14,20", "minute": "0"})
        job = scheduler._scheduler.get_job("news_refresh")

        assert isinstance(job.trigger, CronTrigger)
        assert job.max_instances == 1
        assert job.args == ("news_refresh",)

    def test_re_adding_replaces_job(self, scheduler):
        async def first():
            pass

        async def second():
            pass

        scheduler.add_job("news_refresh", first, {"minute": "0"})
        scheduler.add_job("news_refresh", second, {"minute": "30"})

        assert scheduler.job_names() == ["news_refresh"]
        assert scheduler.get_job("news_refresh").body is second

    def test_default_jobs(self, engine):
        scheduler = engine.scheduler
        assert scheduler.job_names() == [
            "ipo_check",
            "market_data_refresh",
            "market_status_check",
            "news_refresh",
            "price_alert_check",
        ]
        assert scheduler.get_job("ipo_check").window is None
        assert scheduler.get_job("news_refresh").window is None

        market_hours = scheduler.get_job("market_data_refresh").window
        assert (market_hours.start_minute, market_hours.end_minute) == (660, 900)
        assert scheduler.get_job("price_alert_check").window == market_hours

        watch = scheduler.get_job("market_status_check").window
        assert (watch.start_minute, watch.end_minute) == (630, 930)
        assert watch.allowed_days == frozenset({6, 0, 1, 2, 3})

    def test_register_uses_settings_calendar(self, clock, engine, settings):
        scheduler = MarketScheduler(FixedClock(clock.now()), settings.market_timezone)
        register_default_jobs(scheduler, engine.jobs, settings)
        assert scheduler.get_job("price_alert_check").cron == {"minute": "*/2"}
        assert scheduler.get_job("ipo_check").cron == {"hour": "10,20", "minute": "0"}
