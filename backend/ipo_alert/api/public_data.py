"""
Public market data endpoints, served from the shared cache.
"""
import logging
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from ipo_alert.api.deps import get_engine
from ipo_alert.core.errors import FetchError
from ipo_alert.services.engine import Engine
from ipo_alert.services.market.sources import (
    CACHE_KEYS,
    VALID_INDEX_RANGES,
    indices_cache_key,
    unpack_news,
    unpack_ongoing_ipos,
    unpack_tickers,
    unpack_upcoming_ipos,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class DataResponse(BaseModel):
    """Envelope for public data responses."""
    success: bool = True
    type: str
    data: Any
    timeRange: Optional[str] = None


async def _cached(engine: Engine, source: str) -> Any:
    """Cached payload for a source; an expired payload is served if the refresh fails."""
    try:
        return await engine.fetch_layer.get_or_fetch(
            CACHE_KEYS[source], engine.client.fetcher(source), serve_stale=True
        )
    except FetchError as e:
        logger.error(f"Error fetching {source}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch {source.replace('_', ' ')}"
        )


def _float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def format_indices(payload: Any, now_iso: str) -> dict:
    """Normalize the NEPSE index feed into a chart-friendly shape."""
    response = payload.get("response") if isinstance(payload, dict) else None
    if not isinstance(response, dict):
        return {}

    calculated_on = response.get("calculated_on") or now_iso
    latest_price = _float(response.get("latest_price"))
    chart = response.get("chartData")
    if isinstance(chart, list):
        chart_data = [
            {
                "value": _float(item.get("value")),
                "timestamp": item.get("timestamp"),
                "volume": _float(item.get("volume")),
            }
            for item in chart
            if isinstance(item, dict)
        ]
    else:
        chart_data = [{"value": latest_price, "timestamp": calculated_on, "volume": 0}]

    return {
        "indices_name": "NEPSE",
        "point_change": _float(response.get("point_change")),
        "percentage_change": _float(response.get("percentage_change")),
        "calculated_on": calculated_on,
        "latest_price": latest_price,
        "chartData": chart_data,
    }


def format_sector_performance(payload: Any) -> list:
    rows = payload.get("response") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        return []
    return [
        {
            "sector": item.get("indices") or "Unknown",
            "change": item.get("points_change") or 0,
            "percentChange": item.get("percentage_change") or 0,
            "volume": item.get("turnover"),
            "marketCap": None,
        }
        for item in rows
        if isinstance(item, dict)
    ]


@router.get("/ipos/ongoing", response_model=DataResponse)
async def ongoing_ipos(engine: Engine = Depends(get_engine)):
    payload = await _cached(engine, "ongoing")
    return DataResponse(type="ongoing", data=unpack_ongoing_ipos(payload))


@router.get("/ipos/upcoming", response_model=DataResponse)
async def upcoming_ipos(engine: Engine = Depends(get_engine)):
    payload = await _cached(engine, "upcoming")
    return DataResponse(type="upcoming", data=unpack_upcoming_ipos(payload))


@router.get("/tickers", response_model=DataResponse)
async def tickers(engine: Engine = Depends(get_engine)):
    payload = await _cached(engine, "tickers")
    return DataResponse(type="tickers", data=unpack_tickers(payload))


@router.get("/news", response_model=DataResponse)
async def news(engine: Engine = Depends(get_engine)):
    payload = await _cached(engine, "news")
    return DataResponse(type="news", data=unpack_news(payload))


@router.get("/indices/{range_}", response_model=DataResponse)
async def indices(range_: str, engine: Engine = Depends(get_engine)):
    if range_ not in VALID_INDEX_RANGES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid range. Valid ranges: {', '.join(VALID_INDEX_RANGES)}"
        )
    try:
        payload = await engine.fetch_layer.get_or_fetch(
            indices_cache_key(range_), engine.client.indices_fetcher(range_), serve_stale=True
        )
    except FetchError as e:
        logger.error(f"Error fetching indices {range_}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch market indices")
    return DataResponse(
        type="indices",
        timeRange=range_,
        data=format_indices(payload, engine.clock.now().isoformat()),
    )


@router.get("/sector-performance", response_model=DataResponse)
async def sector_performance(engine: Engine = Depends(get_engine)):
    payload = await _cached(engine, "sector_performance")
    return DataResponse(type="sector-performance", data=format_sector_performance(payload))


@router.get("/market-status", response_model=DataResponse)
async def market_status(engine: Engine = Depends(get_engine)):
    payload = await _cached(engine, "market_status")
    data = payload.get("response", []) if isinstance(payload, dict) else []
    return DataResponse(type="market-status", data=data)


@router.get("/trending-stocks", response_model=DataResponse)
async def trending_stocks(engine: Engine = Depends(get_engine)):
    payload = await _cached(engine, "trending_stocks")
    data = payload.get("response", []) if isinstance(payload, dict) else []
    return DataResponse(type="trending-stocks", data=data)
