"""
Push notification delivery and subscriber storage.
"""
from ipo_alert.services.notifications.dispatcher import NotificationDispatcher, DispatchReport
from ipo_alert.services.notifications.push_provider import FcmPushProvider, PushTicket
from ipo_alert.services.notifications.subscriber_store import SubscriberStore

__all__ = [
    "NotificationDispatcher",
    "DispatchReport",
    "FcmPushProvider",
    "PushTicket",
    "SubscriberStore",
]
