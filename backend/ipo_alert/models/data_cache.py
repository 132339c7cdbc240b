"""
Cache entry model for upstream market data.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from ipo_alert.core.database import Base


class CacheEntry(Base):
    __tablename__ = "data_cache"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(255), unique=True, index=True, nullable=False)  # Cache key, e.g. "tickers"
    payload = Column(Text, nullable=False)  # JSON string, replaced wholesale on refresh
    fetched_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
