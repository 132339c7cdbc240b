"""
Database models.
"""
from ipo_alert.models.user import User
from ipo_alert.models.push_token import PushToken
from ipo_alert.models.price_alert import PriceAlert, AlertCondition, AlertMode
from ipo_alert.models.data_cache import CacheEntry

__all__ = [
    "User",
    "PushToken",
    "PriceAlert",
    "AlertCondition",
    "AlertMode",
    "CacheEntry",
]
