"""
Push token registration endpoints.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from ipo_alert.api.deps import get_engine
from ipo_alert.services.engine import Engine

logger = logging.getLogger(__name__)

router = APIRouter()


class TokenRequest(BaseModel):
    """Request model carrying a device push token."""
    token: Optional[str] = None


class TokenResponse(BaseModel):
    success: bool = True
    message: str


def _require_token(request: TokenRequest) -> str:
    if not request.token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is required")
    return request.token


@router.post("/register-token-public", response_model=TokenResponse)
async def register_token_public(request: TokenRequest, engine: Engine = Depends(get_engine)):
    """Register an anonymous device token for broadcast notifications."""
    token = _require_token(request)
    if not engine.provider.is_valid_token(token):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid push token")
    engine.subscriber_store.add_token(token)
    return TokenResponse(message="Token registered successfully")


@router.post("/remove-token", response_model=TokenResponse)
async def remove_token(request: TokenRequest, engine: Engine = Depends(get_engine)):
    """Unregister a device token."""
    token = _require_token(request)
    if engine.subscriber_store.remove_token(token):
        logger.info("🗑️ Token removed on request")
    return TokenResponse(message="Token removed successfully")
