"""
User model. Accounts are created by the auth service; this side only needs ownership.
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ipo_alert.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    push_tokens = relationship("PushToken", back_populates="user")
    price_alerts = relationship("PriceAlert", back_populates="user", cascade="all, delete-orphan")
