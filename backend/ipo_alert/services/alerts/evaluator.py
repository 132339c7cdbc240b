"""
Price alert evaluation against the cached live-trading feed.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional
from ipo_alert.core.clock import Clock
from ipo_alert.core.errors import DispatchProviderError
from ipo_alert.models.price_alert import AlertCondition, AlertMode
from ipo_alert.services.alerts.alert_store import AlertStore, AlertView
from ipo_alert.services.cache.fetch_layer import FetchLayer
from ipo_alert.services.market.sources import CACHE_KEYS, ticker_prices
from ipo_alert.services.notifications.dispatcher import NotificationDispatcher
from ipo_alert.services.notifications.subscriber_store import SubscriberStore

logger = logging.getLogger(__name__)


@dataclass
class EvaluationReport:
    checked: int = 0
    triggered: List[int] = field(default_factory=list)
    skipped_no_price: int = 0
    skipped_cooldown: int = 0
    notified: int = 0


def condition_met(condition: str, current_price: float, target_price: float) -> bool:
    """Both bounds are inclusive: an exact hit counts."""
    if condition == AlertCondition.ABOVE.value:
        return current_price >= target_price
    if condition == AlertCondition.BELOW.value:
        return current_price <= target_price
    logger.warning(f"Unknown alert condition '{condition}'")
    return False


class PriceAlertEvaluator:
    """Fires untriggered alerts whose threshold the latest cached price has crossed."""

    def __init__(
        self,
        alert_store: AlertStore,
        fetch_layer: FetchLayer,
        subscriber_store: SubscriberStore,
        dispatcher: NotificationDispatcher,
        clock: Clock,
        recurring_cooldown: Optional[timedelta] = None,
    ):
        """Initialize evaluator.

        Args:
            recurring_cooldown: Minimum gap between two firings of one recurring alert.
                None or zero re-fires on every evaluation while the condition holds.
        """
        self.alert_store = alert_store
        self.fetch_layer = fetch_layer
        self.subscriber_store = subscriber_store
        self.dispatcher = dispatcher
        self.clock = clock
        self.recurring_cooldown = recurring_cooldown if recurring_cooldown else None

    def _cooling_down(self, alert: AlertView, now) -> bool:
        if alert.mode != AlertMode.RECURRING.value or self.recurring_cooldown is None:
            return False
        if alert.last_triggered_at is None:
            return False
        return now - alert.last_triggered_at < self.recurring_cooldown

    async def evaluate(self) -> EvaluationReport:
        report = EvaluationReport()

        prices = ticker_prices(await asyncio.to_thread(self.fetch_layer.peek, CACHE_KEYS["tickers"]))
        if not prices:
            logger.info("❌ No cached ticker prices available for price alert checking")
            return report

        alerts = await asyncio.to_thread(self.alert_store.list_untriggered)
        report.checked = len(alerts)
        logger.info(f"📊 Checking {len(alerts)} active price alerts against {len(prices)} tickers")

        now = self.clock.now()
        fired = []
        for alert in alerts:
            current_price = prices.get(alert.ticker)
            if current_price is None:
                report.skipped_no_price += 1
                continue
            if not condition_met(alert.condition, current_price, alert.target_price):
                continue
            if self._cooling_down(alert, now):
                report.skipped_cooldown += 1
                continue

            # Persist before notifying so a one-time alert cannot fire twice
            await asyncio.to_thread(
                self.alert_store.record_trigger, alert.id, now, alert.mode != AlertMode.RECURRING.value
            )
            report.triggered.append(alert.id)
            fired.append((alert, current_price))

        if not fired:
            logger.info("✅ No price alerts triggered")
            return report

        owner_tokens = await asyncio.to_thread(
            self.subscriber_store.tokens_for_users, [alert.user_id for alert, _ in fired]
        )
        for alert, current_price in fired:
            tokens = owner_tokens.get(alert.user_id, [])
            if not tokens:
                logger.info(f"Alert {alert.id} fired but user {alert.user_id} has no push tokens")
                continue
            try:
                result = await self.dispatcher.dispatch(
                    tokens,
                    f"🎯 Price Alert: {alert.ticker}",
                    f"{alert.ticker} is now {alert.condition} your target price of {alert.target_price}. "
                    f"Current price: {current_price}",
                    {
                        "type": "price_alert",
                        "alertId": alert.id,
                        "ticker": alert.ticker,
                        "targetPrice": alert.target_price,
                        "currentPrice": current_price,
                        "condition": alert.condition,
                    },
                )
                if result.delivered:
                    report.notified += 1
            except DispatchProviderError as e:
                logger.error(f"Could not notify user {alert.user_id} for alert {alert.id}: {e}")
            except Exception as e:
                # Already recorded as triggered; keep notifying the remaining owners
                logger.error(f"Notification for alert {alert.id} failed: {e}", exc_info=True)

        logger.info(f"🚨 Triggered {len(report.triggered)} price alerts")
        return report
