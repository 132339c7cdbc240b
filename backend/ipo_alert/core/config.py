"""
Configuration management.
Loads from config_local.py (gitignored) for secrets, with defaults.
"""
from typing import Optional

DEFAULT_SOURCES = {
    "ongoing": "https://www.nepalipaisa.com/api/GetIpos?stockSymbol=&pageNo=1&itemsPerPage=10&pagePerDisplay=5",
    "upcoming": "https://www.onlinekhabar.com/smtm/home/ipo-corner-upcoming",
    "tickers": "https://www.onlinekhabar.com/smtm/stock_live/live-trading",
    "news": "https://www.onlinekhabar.com/wp-json/okapi/v1/category-posts?category=share-market",
    "sector_performance": "https://www.onlinekhabar.com/smtm/stock_live/sector-performance",
    "market_status": "https://www.onlinekhabar.com/smtm/home/market-status",
    "trending_stocks": "https://www.onlinekhabar.com/smtm/home/trending",
}
DEFAULT_INDICES_BASE_URL = "https://www.onlinekhabar.com/smtm/home/indices-data/nepse"

# Try to import local config (gitignored)
try:
    from ipo_alert.config_local import (
        DATABASE_DSN,
        FIREBASE_CREDENTIALS_PATH,
    )
    # Tuning values are optional in the local file
    try:
        from ipo_alert.config_local import (
            MARKET_TIMEZONE,
            BUSINESS_DAYS,
            MARKET_OPEN,
            MARKET_CLOSE,
            MARKET_STATUS_WATCH_START,
            MARKET_STATUS_WATCH_END,
            CACHE_TTL_SECONDS,
            FETCH_DEADLINE_SECONDS,
            RECURRING_ALERT_COOLDOWN_MINUTES,
            ENABLE_SCHEDULER,
            LOG_LEVEL,
        )
    except ImportError:
        MARKET_TIMEZONE = "Asia/Kathmandu"
        BUSINESS_DAYS = (6, 0, 1, 2, 3)  # Sunday..Thursday (Monday=0)
        MARKET_OPEN = "11:00"
        MARKET_CLOSE = "15:00"
        MARKET_STATUS_WATCH_START = "10:30"
        MARKET_STATUS_WATCH_END = "15:30"
        CACHE_TTL_SECONDS = 300
        FETCH_DEADLINE_SECONDS = 15.0
        RECURRING_ALERT_COOLDOWN_MINUTES = 0
        ENABLE_SCHEDULER = True
        LOG_LEVEL = "INFO"
    try:
        from ipo_alert.config_local import SOURCES, INDICES_BASE_URL
    except ImportError:
        SOURCES = DEFAULT_SOURCES
        INDICES_BASE_URL = DEFAULT_INDICES_BASE_URL
except ImportError:
    # Fallback defaults (push delivery will fail at runtime if credentials are not set)
    DATABASE_DSN: str = "sqlite:///./ipo_alert.db"
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None
    MARKET_TIMEZONE: str = "Asia/Kathmandu"
    BUSINESS_DAYS: tuple = (6, 0, 1, 2, 3)  # Sunday..Thursday (Monday=0)
    MARKET_OPEN: str = "11:00"
    MARKET_CLOSE: str = "15:00"
    MARKET_STATUS_WATCH_START: str = "10:30"
    MARKET_STATUS_WATCH_END: str = "15:30"
    CACHE_TTL_SECONDS: int = 300  # 5 minutes
    FETCH_DEADLINE_SECONDS: float = 15.0
    RECURRING_ALERT_COOLDOWN_MINUTES: int = 0  # 0 = re-fire every cycle while the condition holds
    ENABLE_SCHEDULER: bool = True
    LOG_LEVEL: str = "INFO"
    SOURCES: dict = DEFAULT_SOURCES
    INDICES_BASE_URL: str = DEFAULT_INDICES_BASE_URL


def parse_hhmm(value: str) -> int:
    """Convert an 'HH:MM' string to minutes since midnight."""
    hour, minute = map(int, value.split(':'))
    if not (0 <= hour <= 24 and 0 <= minute < 60) or hour * 60 + minute > 24 * 60:
        raise ValueError(f"Invalid time of day: {value}")
    return hour * 60 + minute


def get_settings():
    """Return settings object (for FastAPI dependency injection if needed)."""
    return type("Settings", (), {
        "database_dsn": DATABASE_DSN,
        "firebase_credentials_path": FIREBASE_CREDENTIALS_PATH,
        "market_timezone": MARKET_TIMEZONE,
        "business_days": frozenset(BUSINESS_DAYS),
        "market_open_minute": parse_hhmm(MARKET_OPEN),
        "market_close_minute": parse_hhmm(MARKET_CLOSE),
        "status_watch_start_minute": parse_hhmm(MARKET_STATUS_WATCH_START),
        "status_watch_end_minute": parse_hhmm(MARKET_STATUS_WATCH_END),
        "cache_ttl_seconds": CACHE_TTL_SECONDS,
        "fetch_deadline_seconds": FETCH_DEADLINE_SECONDS,
        "recurring_alert_cooldown_minutes": RECURRING_ALERT_COOLDOWN_MINUTES,
        "enable_scheduler": ENABLE_SCHEDULER,
        "log_level": LOG_LEVEL,
        "sources": dict(SOURCES),
        "indices_base_url": INDICES_BASE_URL,
    })()
