"""
Shared FastAPI dependencies.
"""
from fastapi import Request
from ipo_alert.services.engine import Engine


def get_engine(request: Request) -> Engine:
    """Engine built at startup and stored on app.state."""
    return request.app.state.engine
