"""
Price alert model.
"""
import enum
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ipo_alert.core.database import Base


class AlertCondition(str, enum.Enum):
    ABOVE = "above"
    BELOW = "below"


class AlertMode(str, enum.Enum):
    ONE_TIME = "one-time"
    RECURRING = "recurring"


class PriceAlert(Base):
    """A user's price threshold on a ticker."""

    __tablename__ = "price_alerts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    ticker = Column(String(20), nullable=False, index=True)
    target_price = Column(Float, nullable=False)
    condition = Column(String(10), nullable=False)  # 'above' or 'below'
    mode = Column(String(20), nullable=False, default=AlertMode.ONE_TIME.value)  # 'one-time' or 'recurring'

    # A one-time alert stays triggered forever; recurring alerts never set this
    triggered = Column(Boolean, nullable=False, default=False, index=True)
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="price_alerts")
