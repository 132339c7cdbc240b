"""
Notification dispatcher: chunked push delivery with invalid-token pruning.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol
from sqlalchemy.exc import SQLAlchemyError
from ipo_alert.core.errors import DispatchProviderError
from ipo_alert.services.notifications.push_provider import PushTicket
from ipo_alert.services.notifications.subscriber_store import SubscriberStore

logger = logging.getLogger(__name__)


class PushProvider(Protocol):
    max_batch_size: int

    def is_valid_token(self, token: Any) -> bool: ...

    async def send_batch(
        self, tokens: List[str], title: str, body: str, data: Optional[Dict[str, Any]] = None
    ) -> List[PushTicket]: ...


@dataclass
class DispatchReport:
    """Counts for one dispatch call."""
    attempted: int = 0
    delivered: int = 0
    pruned: int = 0
    failed_chunks: int = 0


class NotificationDispatcher:
    """Sends one message to a set of tokens and keeps the subscriber store clean."""

    def __init__(self, provider: PushProvider, subscriber_store: SubscriberStore, chunk_size: Optional[int] = None):
        self.provider = provider
        self.subscriber_store = subscriber_store
        limit = provider.max_batch_size
        self.chunk_size = min(chunk_size, limit) if chunk_size else limit

    async def _prune(self, ticket: PushTicket, report: DispatchReport):
        try:
            removed = await asyncio.to_thread(self.subscriber_store.remove_token, ticket.token)
        except SQLAlchemyError as e:
            # Token stays registered; the next send reports it again
            logger.error(f"Could not prune undeliverable token: {e}")
            return
        if removed:
            report.pruned += 1
        logger.info(f"🗑️ Pruned undeliverable token ({ticket.error.reason})")

    async def dispatch(
        self,
        tokens: Iterable[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> DispatchReport:
        """Deliver title/body/data to every valid token.

        Partial failures are reported, not raised.

        Raises:
            DispatchProviderError: If no chunk could be handed to the provider
        """
        valid = []
        seen = set()
        for token in tokens:
            if token in seen:
                continue
            seen.add(token)
            if self.provider.is_valid_token(token):
                valid.append(token)

        report = DispatchReport(attempted=len(valid))
        dropped = len(seen) - len(valid)
        if dropped:
            logger.debug(f"Dropped {dropped} malformed token(s) before sending")
        if not valid:
            logger.info(f"No valid push tokens for: {title}")
            return report

        chunks = [valid[i:i + self.chunk_size] for i in range(0, len(valid), self.chunk_size)]
        last_error: Optional[DispatchProviderError] = None

        for index, chunk in enumerate(chunks, start=1):
            try:
                tickets = await self.provider.send_batch(chunk, title, body, data)
            except DispatchProviderError as e:
                logger.error(f"Chunk {index}/{len(chunks)} ({len(chunk)} tokens) not sent: {e}")
                report.failed_chunks += 1
                last_error = e
                continue

            for ticket in tickets:
                if ticket.success:
                    report.delivered += 1
                elif ticket.is_permanent_failure:
                    await self._prune(ticket, report)
                else:
                    logger.warning(f"Transient delivery failure, token kept: {ticket.error}")

        logger.info(
            f"📱 {title}: {report.delivered}/{report.attempted} delivered, "
            f"{report.pruned} pruned, {report.failed_chunks} chunk(s) failed"
        )

        if report.failed_chunks == len(chunks):
            raise DispatchProviderError(f"Push provider unreachable for all {len(chunks)} chunk(s)") from last_error
        return report
