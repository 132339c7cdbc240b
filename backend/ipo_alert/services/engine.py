"""
Assembles the sync and dispatch engine from its stores and collaborators.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional
from sqlalchemy.orm import Session
from ipo_alert.core.clock import Clock, SystemClock
from ipo_alert.services.alerts.alert_store import AlertStore
from ipo_alert.services.alerts.evaluator import PriceAlertEvaluator
from ipo_alert.services.cache.cache_store import CacheStore
from ipo_alert.services.cache.fetch_layer import FetchLayer
from ipo_alert.services.detection.change_detector import ChangeDetector, SnapshotStore
from ipo_alert.services.market.client import MarketDataClient
from ipo_alert.services.notifications.dispatcher import NotificationDispatcher, PushProvider
from ipo_alert.services.notifications.push_provider import FcmPushProvider
from ipo_alert.services.notifications.subscriber_store import SubscriberStore
from ipo_alert.services.scheduler.jobs import MarketJobs, register_default_jobs
from ipo_alert.services.scheduler.scheduler_service import MarketScheduler

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    clock: Clock
    cache_store: CacheStore
    fetch_layer: FetchLayer
    client: MarketDataClient
    snapshots: SnapshotStore
    detector: ChangeDetector
    subscriber_store: SubscriberStore
    alert_store: AlertStore
    provider: PushProvider
    dispatcher: NotificationDispatcher
    evaluator: PriceAlertEvaluator
    jobs: MarketJobs
    scheduler: MarketScheduler

    async def aclose(self):
        self.scheduler.shutdown()
        await self.client.aclose()


def build_engine(
    settings,
    session_factory: Callable[[], Session],
    clock: Optional[Clock] = None,
    provider: Optional[PushProvider] = None,
    client: Optional[MarketDataClient] = None,
) -> Engine:
    """Create every component with its dependencies injected.

    Args:
        settings: Object returned by ipo_alert.core.config.get_settings()
        session_factory: Callable returning a new SQLAlchemy Session
        clock: Defaults to the system clock
        provider: Defaults to FCM with settings.firebase_credentials_path
        client: Defaults to an httpx client over settings.sources
    """
    clock = clock or SystemClock()
    provider = provider or FcmPushProvider(settings.firebase_credentials_path)
    client = client or MarketDataClient(
        settings.sources,
        settings.indices_base_url,
        timeout=settings.fetch_deadline_seconds,
    )

    cache_store = CacheStore(session_factory)
    fetch_layer = FetchLayer(
        cache_store,
        clock,
        default_ttl=settings.cache_ttl_seconds,
        deadline_seconds=settings.fetch_deadline_seconds,
    )
    snapshots = SnapshotStore()
    detector = ChangeDetector(snapshots)
    subscriber_store = SubscriberStore(session_factory)
    alert_store = AlertStore(session_factory)
    dispatcher = NotificationDispatcher(provider, subscriber_store)

    cooldown_minutes = settings.recurring_alert_cooldown_minutes
    evaluator = PriceAlertEvaluator(
        alert_store,
        fetch_layer,
        subscriber_store,
        dispatcher,
        clock,
        recurring_cooldown=timedelta(minutes=cooldown_minutes) if cooldown_minutes else None,
    )
    jobs = MarketJobs(
        fetch_layer,
        client,
        detector,
        subscriber_store,
        dispatcher,
        evaluator,
        clock,
        settings.market_timezone,
    )
    scheduler = MarketScheduler(clock, settings.market_timezone)
    register_default_jobs(scheduler, jobs, settings)

    return Engine(
        clock=clock,
        cache_store=cache_store,
        fetch_layer=fetch_layer,
        client=client,
        snapshots=snapshots,
        detector=detector,
        subscriber_store=subscriber_store,
        alert_store=alert_store,
        provider=provider,
        dispatcher=dispatcher,
        evaluator=evaluator,
        jobs=jobs,
        scheduler=scheduler,
    )
