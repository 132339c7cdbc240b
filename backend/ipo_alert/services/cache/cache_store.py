"""
Durable key -> (payload, fetched_at) store backed by the data_cache table.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from ipo_alert.core.clock import ensure_utc
from ipo_alert.models.data_cache import CacheEntry

logger = logging.getLogger(__name__)


@dataclass
class CachedPayload:
    """A decoded cache row."""
    key: str
    payload: Any
    fetched_at: datetime  # always UTC-aware


class CacheStore:
    """Upsert and read cache entries. One short-lived session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[CachedPayload]:
        """Return the entry for key regardless of age, or None."""
        db = self._session_factory()
        try:
            entry = db.query(CacheEntry).filter(CacheEntry.key == key).first()
            if not entry:
                return None
            return CachedPayload(
                key=entry.key,
                payload=json.loads(entry.payload),
                fetched_at=ensure_utc(entry.fetched_at),
            )
        finally:
            db.close()

    def upsert(self, key: str, payload: Any, fetched_at: datetime):
        """Replace the payload for key wholesale (created on first write)."""
        encoded = json.dumps(payload)
        db = self._session_factory()
        try:
            entry = db.query(CacheEntry).filter(CacheEntry.key == key).first()
            if entry:
                entry.payload = encoded
                entry.fetched_at = fetched_at
            else:
                db.add(CacheEntry(key=key, payload=encoded, fetched_at=fetched_at))
            try:
                db.commit()
            except IntegrityError:
                # Another writer inserted the key first; last writer wins
                db.rollback()
                logger.debug(f"Cache insert race on '{key}', updating instead")
                db.query(CacheEntry).filter(CacheEntry.key == key).update(
                    {"payload": encoded, "fetched_at": fetched_at}
                )
                db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
