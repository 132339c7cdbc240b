"""
Firebase Cloud Messaging adapter for the notification dispatcher.
"""
import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import firebase_admin
from firebase_admin import credentials, messaging
from ipo_alert.core.errors import DispatchProviderError, PermanentTokenError

logger = logging.getLogger(__name__)

# FCM registration tokens are opaque but use a URL-safe alphabet plus ':'
_FCM_TOKEN_RE = re.compile(r"^[A-Za-z0-9_\-:]{32,4096}$")


@dataclass
class PushTicket:
    """Delivery outcome for one token in a batch."""
    token: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def is_permanent_failure(self) -> bool:
        return isinstance(self.error, PermanentTokenError)


class FcmPushProvider:
    """Sends multicast messages through firebase_admin.messaging."""

    max_batch_size = 500  # FCM limit per multicast message

    def __init__(self, credentials_path: Optional[str] = None, app: Optional[firebase_admin.App] = None):
        self.credentials_path = credentials_path
        self._app = app

    def _ensure_app(self) -> firebase_admin.App:
        if self._app is None:
            if firebase_admin._apps:
                self._app = firebase_admin.get_app()
            else:
                if not self.credentials_path:
                    raise DispatchProviderError("FIREBASE_CREDENTIALS_PATH is not configured")
                cred = credentials.Certificate(self.credentials_path)
                self._app = firebase_admin.initialize_app(cred)
                logger.info("Firebase Admin initialized for push delivery")
        return self._app

    @staticmethod
    def is_valid_token(token: Any) -> bool:
        return isinstance(token, str) and bool(_FCM_TOKEN_RE.match(token))

    async def send_batch(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> List[PushTicket]:
        """Send one multicast message and return a ticket per token, in order.

        Raises:
            DispatchProviderError: If the batch call itself failed
        """
        if len(tokens) > self.max_batch_size:
            raise ValueError(f"Batch of {len(tokens)} exceeds FCM limit of {self.max_batch_size}")

        message = messaging.MulticastMessage(
            notification=messaging.Notification(title=title, body=body),
            data=_stringify(data),
            tokens=list(tokens),
        )
        try:
            app = self._ensure_app()
            # Run the blocking call in a separate thread
            response = await asyncio.to_thread(messaging.send_each_for_multicast, message, app=app)
        except DispatchProviderError:
            raise
        except Exception as e:
            raise DispatchProviderError(f"FCM multicast failed: {type(e).__name__}: {e}") from e

        tickets = []
        for token, resp in zip(tokens, response.responses):
            if resp.success:
                tickets.append(PushTicket(token=token, success=True, message_id=resp.message_id))
            else:
                tickets.append(PushTicket(token=token, success=False, error=_classify(token, resp.exception)))
        return tickets


def _classify(token: str, exc: Optional[Exception]) -> Exception:
    """Map an FCM per-message exception to PermanentTokenError where the device is gone for good."""
    if isinstance(exc, messaging.UnregisteredError):
        return PermanentTokenError(token, "unregistered")
    if isinstance(exc, messaging.SenderIdMismatchError):
        return PermanentTokenError(token, "sender_id_mismatch")
    if exc is None:
        return RuntimeError("FCM reported failure without details")
    return exc


def _stringify(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """FCM data payloads only accept string values."""
    if not data:
        return None
    result = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, str):
            result[str(key)] = value
        elif isinstance(value, bool):
            result[str(key)] = "true" if value else "false"
        elif isinstance(value, (int, float)):
            result[str(key)] = str(value)
        else:
            result[str(key)] = json.dumps(value, default=str)
    return result
