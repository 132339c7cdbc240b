"""
Scheduled market sync jobs.

Each job fetches through the shared cache, runs change detection where it
applies and fans out notifications for the detected changes.
"""
import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from ipo_alert.core.clock import Clock
from ipo_alert.core.errors import DispatchProviderError, ScheduleJobError
from ipo_alert.services.alerts.evaluator import EvaluationReport, PriceAlertEvaluator
from ipo_alert.services.cache.fetch_layer import FetchLayer
from ipo_alert.services.detection.change_detector import (
    ChangeDetector,
    ChangeEvent,
    MARKET_STATUS,
    ONGOING_IPOS,
    UPCOMING_IPOS,
)
from ipo_alert.services.market.client import MarketDataClient
from ipo_alert.services.market.sources import (
    CACHE_KEYS,
    indices_cache_key,
    ipo_display_name,
    unpack_market_status,
    unpack_ongoing_ipos,
    unpack_upcoming_ipos,
)
from ipo_alert.services.notifications.dispatcher import DispatchReport, NotificationDispatcher
from ipo_alert.services.notifications.subscriber_store import SubscriberStore
from ipo_alert.services.scheduler.scheduler_service import MarketScheduler
from ipo_alert.services.scheduler.time_window import ScheduleWindow

logger = logging.getLogger(__name__)

IPO_CHECK = "ipo_check"
MARKET_DATA_REFRESH = "market_data_refresh"
MARKET_STATUS_CHECK = "market_status_check"
PRICE_ALERT_CHECK = "price_alert_check"
NEWS_REFRESH = "news_refresh"


def build_message(event: ChangeEvent, local_now=None) -> Tuple[str, str, Dict[str, Any]]:
    """Title, body and data payload for a change event."""
    if event.domain == MARKET_STATUS:
        data = {"type": f"market_{event.kind}", "market_live": event.details.get("current") == "open"}
        if local_now is not None:
            data["timestamp"] = local_now.isoformat()
            data["day"] = local_now.strftime("%A")
        if event.kind == "opened":
            return "📈 Market is Now Open!", "Nepal Stock Exchange is now live for trading!", data
        if event.kind == "closed":
            return "🔔 Market is Now Closed", "Nepal Stock Exchange has closed trading for the day.", data
        return "Market Status Changed", f"Market status is now {event.details.get('current')}.", data

    entries = event.details.get("entries", [])
    names = [ipo_display_name(entry) for entry in entries]
    symbols = [entry.get("symbol") for entry in entries if entry.get("symbol")]
    if event.domain == ONGOING_IPOS:
        title = "📈 IPO Open for Application"
        if len(names) == 1:
            body = f"Have you applied? There is an IPO open: {names[0]}"
        else:
            body = f"Have you applied? {len(names)} IPOs are open: {', '.join(names)}"
        return title, body, {"type": "open_ipo", "companies": names, "symbols": symbols}

    title = "🗓️ Upcoming IPO"
    if len(names) == 1:
        body = f"{names[0]} IPO has been announced."
    else:
        body = f"{len(names)} upcoming IPOs announced: {', '.join(names)}"
    return title, body, {"type": "upcoming_ipo", "companies": names, "symbols": symbols}


class MarketJobs:
    """Job bodies run by the scheduler."""

    def __init__(
        self,
        fetch_layer: FetchLayer,
        client: MarketDataClient,
        detector: ChangeDetector,
        subscriber_store: SubscriberStore,
        dispatcher: NotificationDispatcher,
        evaluator: PriceAlertEvaluator,
        clock: Clock,
        timezone: str,
        market_status_ttl: int = 60,
    ):
        self.fetch_layer = fetch_layer
        self.client = client
        self.detector = detector
        self.subscriber_store = subscriber_store
        self.dispatcher = dispatcher
        self.evaluator = evaluator
        self.clock = clock
        self.timezone = timezone
        self.market_status_ttl = market_status_ttl
        # Event kind -> local date it was last broadcast
        self._status_announced: Dict[str, date] = {}

    async def _fetch(self, source: str, ttl: Optional[int] = None) -> Any:
        return await self.fetch_layer.get_or_fetch(CACHE_KEYS[source], self.client.fetcher(source), ttl)

    async def notify_all(self, events: List[ChangeEvent]) -> List[DispatchReport]:
        """One broadcast per event to every registered token."""
        if not events:
            return []
        tokens = await asyncio.to_thread(self.subscriber_store.list_tokens)
        local_now = self.clock.local_now(self.timezone)
        reports = []
        for event in events:
            title, body, data = build_message(event, local_now)
            try:
                reports.append(await self.dispatcher.dispatch(tokens, title, body, data))
            except DispatchProviderError as e:
                logger.error(f"Notification for {event.domain}/{event.kind} not delivered: {e}")
        return reports

    async def check_ipos(self) -> List[ChangeEvent]:
        logger.info("🔄 Checking IPO listings...")
        ongoing_payload, upcoming_payload = await asyncio.gather(
            self._fetch("ongoing"),
            self._fetch("upcoming"),
        )
        ongoing = unpack_ongoing_ipos(ongoing_payload)
        upcoming = unpack_upcoming_ipos(upcoming_payload)
        logger.info(f"📈 Found {len(ongoing)} open and {len(upcoming)} upcoming IPOs")

        events = self.detector.observe(ONGOING_IPOS, ongoing) + self.detector.observe(UPCOMING_IPOS, upcoming)
        await self.notify_all(events)
        return events

    async def refresh_market_data(self) -> Dict[str, Any]:
        logger.info("🔄 Refreshing market data...")
        keys = ["tickers", "news", "sector_performance", "market_status"]
        results = await asyncio.gather(
            *(self._fetch(source) for source in keys),
            self.fetch_layer.get_or_fetch(indices_cache_key("1d"), self.client.indices_fetcher("1d")),
        )
        return dict(zip(keys + ["indices_1d"], results))

    async def check_market_status(self) -> List[ChangeEvent]:
        """Broadcast market open/close transitions, each at most once per local trading day.

        A feed that flaps mid-session still updates the snapshot, but a second
        "opened" (or "closed") on the same day is not announced again.
        """
        payload = await self._fetch("market_status", ttl=self.market_status_ttl)
        status = unpack_market_status(payload)
        if status is None:
            raise ScheduleJobError(MARKET_STATUS_CHECK, "market status not found in response")
        logger.info(f"📊 Current market status: {status['status'].upper()}")

        events = self.detector.observe(MARKET_STATUS, status)
        announced = self._first_today(events)
        await self.notify_all(announced)
        return announced

    def _first_today(self, events: List[ChangeEvent]) -> List[ChangeEvent]:
        today = self.clock.local_now(self.timezone).date()
        fresh = []
        for event in events:
            if self._status_announced.get(event.kind) == today:
                logger.info(f"Market {event.kind} already announced on {today}, skipping broadcast")
                continue
            self._status_announced[event.kind] = today
            fresh.append(event)
        return fresh

    async def check_price_alerts(self) -> EvaluationReport:
        return await self.evaluator.evaluate()

    async def refresh_news(self) -> Any:
        logger.info("📰 Refreshing news...")
        return await self._fetch("news")


def register_default_jobs(scheduler: MarketScheduler, jobs: MarketJobs, settings) -> MarketScheduler:
    """Register the standard job set with the market calendar from settings."""
    market_hours = ScheduleWindow(
        allowed_days=settings.business_days,
        start_minute=settings.market_open_minute,
        end_minute=settings.market_close_minute,
        timezone=settings.market_timezone,
    )
    status_watch = ScheduleWindow(
        allowed_days=settings.business_days,
        start_minute=settings.status_watch_start_minute,
        end_minute=settings.status_watch_end_minute,
        timezone=settings.market_timezone,
    )

    # IPO listings: 10:00 and 20:00 every day
    scheduler.add_job(IPO_CHECK, jobs.check_ipos, {"hour": "10,20", "minute": "0"})
    scheduler.add_job(MARKET_DATA_REFRESH, jobs.refresh_market_data, {"minute": "*/5"}, market_hours)
    scheduler.add_job(MARKET_STATUS_CHECK, jobs.check_market_status, {"minute": "*/5"}, status_watch)
    scheduler.add_job(PRICE_ALERT_CHECK, jobs.check_price_alerts, {"minute": "*/2"}, market_hours)
    scheduler.add_job(NEWS_REFRESH, jobs.refresh_news, {"hour": "8,14,20", "minute": "0"})
    return scheduler
