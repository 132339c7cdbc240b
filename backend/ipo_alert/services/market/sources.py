"""
Upstream feed names, cache keys and payload unpacking.

Feeds are third-party JSON endpoints without a published contract. Only the few
fields read here are relied on; anything else is passed through untouched.
"""
from typing import Any, Dict, List, Optional

# Source name -> cache key
CACHE_KEYS = {
    "ongoing": "ongoing-ipos",
    "upcoming": "upcoming-ipos",
    "tickers": "tickers",
    "news": "news",
    "sector_performance": "sector-performance",
    "market_status": "market-status",
    "trending_stocks": "trending-stocks",
}

VALID_INDEX_RANGES = ("1d", "1m", "3m", "1y", "5y", "all")


def indices_cache_key(range_: str) -> str:
    return f"indices-{range_}"


def _response_list(payload: Any) -> List[dict]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("response"), list):
        return payload["response"]
    return []


def unpack_market_status(payload: Any) -> Optional[Dict[str, str]]:
    """Return {"status": "open"|"closed"} from the market-status feed, or None if unusable."""
    rows = _response_list(payload)
    if not rows or not isinstance(rows[0], dict):
        return None
    live = rows[0].get("market_live")
    if live is None:
        return None
    return {"status": "open" if live else "closed"}


def unpack_ongoing_ipos(payload: Any) -> List[dict]:
    """Ongoing IPO rows, excluding those already closed for application."""
    rows: List[dict] = []
    if isinstance(payload, dict):
        data = payload.get("data")
        result = payload.get("result")
        if isinstance(data, dict) and isinstance(data.get("content"), list):
            rows = data["content"]
        elif isinstance(result, dict) and isinstance(result.get("data"), list):
            rows = result["data"]
        else:
            rows = _response_list(payload)
    return [row for row in rows if isinstance(row, dict) and row.get("status") != "Closed"]


def unpack_upcoming_ipos(payload: Any) -> List[dict]:
    return [row for row in _response_list(payload) if isinstance(row, dict)]


def unpack_tickers(payload: Any) -> List[dict]:
    return [row for row in _response_list(payload) if isinstance(row, dict)]


def unpack_news(payload: Any) -> List[dict]:
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, dict) and isinstance(data.get("news"), list):
            return data["news"]
    return []


def ticker_prices(payload: Any) -> Dict[str, float]:
    """Map ticker symbol -> last traded price from the live-trading feed."""
    prices = {}
    for row in unpack_tickers(payload):
        ticker = row.get("ticker")
        ltp = row.get("ltp")
        if not ticker or ltp is None:
            continue
        try:
            prices[ticker] = float(ltp)
        except (TypeError, ValueError):
            continue
    return prices


def ipo_identity(entry: dict) -> Optional[str]:
    """Stable identity of an IPO row: symbol, else company/name."""
    for field in ("symbol", "company", "company_name", "companyName", "name"):
        value = entry.get(field)
        if value:
            return str(value).strip().upper()
    return None


def ipo_display_name(entry: dict) -> str:
    for field in ("name", "company_name", "companyName", "company", "symbol"):
        value = entry.get(field)
        if value:
            return str(value)
    return "Unknown company"
