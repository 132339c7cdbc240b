"""
Persistence for price alerts as seen by the evaluator.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.orm import Session
from ipo_alert.core.clock import ensure_utc
from ipo_alert.models.price_alert import PriceAlert

logger = logging.getLogger(__name__)


@dataclass
class AlertView:
    """Detached copy of a PriceAlert row."""
    id: int
    user_id: int
    ticker: str
    target_price: float
    condition: str
    mode: str
    triggered: bool
    last_triggered_at: Optional[datetime]


class AlertStore:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def list_untriggered(self) -> List[AlertView]:
        """Alerts still eligible for evaluation, oldest first."""
        db = self._session_factory()
        try:
            rows = db.query(PriceAlert).filter(PriceAlert.triggered == False).order_by(PriceAlert.id).all()  # noqa: E712
            return [
                AlertView(
                    id=row.id,
                    user_id=row.user_id,
                    ticker=row.ticker,
                    target_price=row.target_price,
                    condition=row.condition,
                    mode=row.mode,
                    triggered=row.triggered,
                    last_triggered_at=ensure_utc(row.last_triggered_at) if row.last_triggered_at else None,
                )
                for row in rows
            ]
        finally:
            db.close()

    def record_trigger(self, alert_id: int, triggered_at: datetime, one_time: bool):
        """Stamp last_triggered_at; one-time alerts are disarmed for good."""
        db = self._session_factory()
        try:
            alert = db.query(PriceAlert).filter(PriceAlert.id == alert_id).first()
            if not alert:
                logger.warning(f"Price alert {alert_id} disappeared before its trigger was recorded")
                return
            alert.last_triggered_at = triggered_at
            if one_time:
                alert.triggered = True
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
