"""
Shared fixtures: temporary SQLite database, frozen clock and fake collaborators.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import ipo_alert.models  # noqa: F401  (registers tables on Base.metadata)
from ipo_alert.core.clock import FixedClock
from ipo_alert.core.config import get_settings
from ipo_alert.core.database import Base
from ipo_alert.core.errors import DispatchProviderError, PermanentTokenError
from ipo_alert.models import PriceAlert, PushToken, User
from ipo_alert.services.alerts.alert_store import AlertStore
from ipo_alert.services.cache.cache_store import CacheStore
from ipo_alert.services.cache.fetch_layer import FetchLayer
from ipo_alert.services.engine import build_engine
from ipo_alert.services.notifications.dispatcher import NotificationDispatcher
from ipo_alert.services.notifications.push_provider import PushTicket
from ipo_alert.services.notifications.subscriber_store import SubscriberStore

KATHMANDU = ZoneInfo("Asia/Kathmandu")

# Monday 2025-09-15 12:00 in Kathmandu: a business day, inside market hours
MARKET_NOON = datetime(2025, 9, 15, 12, 0, tzinfo=KATHMANDU)


class FakeProvider:
    """Push provider double recording every batch it is handed."""

    def __init__(self, max_batch_size: int = 500):
        self.max_batch_size = max_batch_size
        self.calls: List[Dict[str, Any]] = []
        self.permanent = set()  # tokens reported as unregistered
        self.transient = set()  # tokens failing with a retryable error
        self.failing_calls = set()  # 1-based call numbers that raise
        self.unreachable = False

    def is_valid_token(self, token: Any) -> bool:
        return isinstance(token, str) and token.startswith("tok-")

    async def send_batch(self, tokens, title, body, data=None) -> List[PushTicket]:
        self.calls.append({"tokens": list(tokens), "title": title, "body": body, "data": data})
        if self.unreachable or len(self.calls) in self.failing_calls:
            raise DispatchProviderError("provider unreachable")

        tickets = []
        for token in tokens:
            if token in self.permanent:
                tickets.append(PushTicket(token=token, success=False, error=PermanentTokenError(token, "unregistered")))
            elif token in self.transient:
                tickets.append(PushTicket(token=token, success=False, error=RuntimeError("quota exceeded")))
            else:
                tickets.append(PushTicket(token=token, success=True, message_id=f"msg-{token}"))
        return tickets

    @property
    def sent_tokens(self) -> List[str]:
        return [token for call in self.calls for token in call["tokens"]]


class FakeClient:
    """Market data client double. A payload that is an exception is raised on fetch."""

    def __init__(self, payloads: Optional[Dict[str, Any]] = None):
        self.payloads = dict(payloads or {})
        self.calls: List[str] = []
        self.closed = False

    def fetcher(self, source: str):
        async def fetch():
            self.calls.append(source)
            value = self.payloads[source]
            if isinstance(value, Exception):
                raise value
            return value

        return fetch

    def indices_fetcher(self, range_: str):
        return self.fetcher(f"indices-{range_}")

    async def aclose(self):
        self.closed = True


@pytest.fixture
def db_engine(tmp_path):
    # File database: store calls run in worker threads, each on its own connection
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ipo_alert_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def clock():
    return FixedClock(MARKET_NOON)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def cache_store(session_factory):
    return CacheStore(session_factory)


@pytest.fixture
def fetch_layer(cache_store, clock):
    return FetchLayer(cache_store, clock, default_ttl=300, deadline_seconds=1.0)


@pytest.fixture
def subscriber_store(session_factory):
    return SubscriberStore(session_factory)


@pytest.fixture
def alert_store(session_factory):
    return AlertStore(session_factory)


@pytest.fixture
def dispatcher(provider, subscriber_store):
    return NotificationDispatcher(provider, subscriber_store)


@pytest.fixture
def market_client():
    return FakeClient({
        "market_status": {"response": [{"market_live": False}]},
        "ongoing": {"result": {"data": []}},
        "upcoming": {"response": []},
        "tickers": {"response": [{"ticker": "NABIL", "ltp": 500.0}]},
        "news": {"data": {"news": [{"title": "Market update"}]}},
        "sector_performance": {"response": [{"indices": "Banking", "points_change": 1.5,
                                             "percentage_change": 0.4, "turnover": 1000}]},
        "trending_stocks": {"response": [{"ticker": "NABIL"}]},
        "indices-1d": {"response": {"latest_price": 2650.5, "point_change": 12.3,
                                    "percentage_change": 0.47, "calculated_on": "2025-09-15T12:00:00"}},
    })


@pytest.fixture
def engine(settings, session_factory, clock, provider, market_client):
    return build_engine(settings, session_factory, clock=clock, provider=provider, client=market_client)


def add_user(session_factory, email: str, tokens=()) -> int:
    db = session_factory()
    try:
        user = User(email=email)
        db.add(user)
        db.flush()
        for token in tokens:
            db.add(PushToken(token=token, user_id=user.id))
        db.commit()
        return user.id
    finally:
        db.close()


def add_alert(session_factory, user_id: int, ticker: str, target_price: float,
              condition: str = "above", mode: str = "one-time") -> int:
    db = session_factory()
    try:
        alert = PriceAlert(user_id=user_id, ticker=ticker, target_price=target_price,
                           condition=condition, mode=mode, triggered=False)
        db.add(alert)
        db.commit()
        return alert.id
    finally:
        db.close()


def get_alert(session_factory, alert_id: int) -> PriceAlert:
    db = session_factory()
    try:
        alert = db.query(PriceAlert).filter(PriceAlert.id == alert_id).first()
        db.expunge(alert)
        return alert
    finally:
        db.close()
