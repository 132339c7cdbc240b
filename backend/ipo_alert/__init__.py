"""
IPO Alert backend: market data sync, change detection and push notifications.
"""
__version__ = "2.0.0"
