"""
Persistence for device push tokens.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from ipo_alert.models.push_token import PushToken

logger = logging.getLogger(__name__)


class SubscriberStore:
    """Add, remove and list push tokens, optionally scoped to users."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def add_token(self, token: str, user_id: Optional[int] = None) -> bool:
        """Register a token. Returns True when a new row was created.

        An existing anonymous token is attached to user_id when one is given;
        a token registered by another user moves to the new owner.
        """
        db = self._session_factory()
        try:
            existing = db.query(PushToken).filter(PushToken.token == token).first()
            if existing:
                if user_id is not None and existing.user_id != user_id:
                    existing.user_id = user_id
                    db.commit()
                    logger.info(f"Token re-associated with user {user_id}")
                else:
                    logger.info("ℹ️ Token already registered")
                return False
            db.add(PushToken(token=token, user_id=user_id))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info("ℹ️ Token registered concurrently")
                return False
            logger.info(f"✅ New token saved (user={user_id or 'anonymous'})")
            return True
        finally:
            db.close()

    def remove_token(self, token: str) -> bool:
        """Delete a token. Returns True if it existed."""
        db = self._session_factory()
        try:
            deleted = db.query(PushToken).filter(PushToken.token == token).delete()
            db.commit()
            return deleted > 0
        finally:
            db.close()

    def list_tokens(self, user_id: Optional[int] = None) -> List[str]:
        """All tokens, or only those owned by user_id."""
        db = self._session_factory()
        try:
            query = db.query(PushToken.token)
            if user_id is not None:
                query = query.filter(PushToken.user_id == user_id)
            return [row.token for row in query.order_by(PushToken.id).all()]
        finally:
            db.close()

    def tokens_for_users(self, user_ids: Iterable[int]) -> Dict[int, List[str]]:
        """Tokens grouped by owner for the given users (owners without tokens are omitted)."""
        ids = set(user_ids)
        if not ids:
            return {}
        db = self._session_factory()
        try:
            rows = db.query(PushToken.user_id, PushToken.token).filter(
                PushToken.user_id.in_(ids)
            ).order_by(PushToken.id).all()
            grouped: Dict[int, List[str]] = {}
            for row in rows:
                grouped.setdefault(row.user_id, []).append(row.token)
            return grouped
        finally:
            db.close()
