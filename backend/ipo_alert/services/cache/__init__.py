"""
Cache store and fetch-or-cache layer for upstream market data.
"""
from ipo_alert.services.cache.cache_store import CacheStore, CachedPayload
from ipo_alert.services.cache.fetch_layer import FetchLayer

__all__ = [
    "CacheStore",
    "CachedPayload",
    "FetchLayer",
]
