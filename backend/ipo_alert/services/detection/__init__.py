"""
Change detection for market status and IPO listings.
"""
from ipo_alert.services.detection.change_detector import (
    ChangeDetector,
    ChangeEvent,
    SnapshotStore,
    MARKET_STATUS,
    ONGOING_IPOS,
    UPCOMING_IPOS,
)

__all__ = [
    "ChangeDetector",
    "ChangeEvent",
    "SnapshotStore",
    "MARKET_STATUS",
    "ONGOING_IPOS",
    "UPCOMING_IPOS",
]
