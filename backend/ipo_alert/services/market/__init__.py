"""
Upstream market-data feeds.
"""
from ipo_alert.services.market.client import MarketDataClient

__all__ = ["MarketDataClient"]
