"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from ipo_alert.api.deps import get_engine
from ipo_alert.services.engine import Engine

router = APIRouter()


@router.get("/")
async def health(engine: Engine = Depends(get_engine)):
    """Service status, server time and scheduler state."""
    return {
        "message": "IPO Alert API Server",
        "status": "running",
        "timestamp": engine.clock.now().isoformat(),
        "local_time": engine.clock.local_now(engine.scheduler.timezone).isoformat(),
        "timezone": engine.scheduler.timezone,
        "scheduler_running": engine.scheduler.running,
        "jobs": engine.scheduler.job_names(),
    }
