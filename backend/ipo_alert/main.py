"""
FastAPI application entry point.
"""
import logging
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from ipo_alert.api import health, public_data, notifications
from ipo_alert.core.config import get_settings
from ipo_alert.core.database import SessionLocal
from ipo_alert.core.logger import configure_logging
from ipo_alert.services.engine import Engine, build_engine

logger = logging.getLogger(__name__)


def create_app(engine: Optional[Engine] = None, start_scheduler: Optional[bool] = None) -> FastAPI:
    """Build the API app.

    Args:
        engine: Pre-built engine (tests); built from settings at startup when None
        start_scheduler: Overrides ENABLE_SCHEDULER
    """
    app_settings = get_settings()
    if start_scheduler is None:
        start_scheduler = app_settings.enable_scheduler

    app = FastAPI(
        title="IPO Alert API",
        description="NEPSE market data, IPO and price alert notifications",
        version="2.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(public_data.router, prefix="/api", tags=["public-data"])
    app.include_router(notifications.router, prefix="/api", tags=["notifications"])

    @app.on_event("startup")
    async def startup_event():
        """Build the engine and start scheduled jobs."""
        configure_logging(app_settings.log_level)
        app.state.engine = engine or build_engine(app_settings, SessionLocal)
        if start_scheduler:
            app.state.engine.scheduler.start()
            logger.info(f"🚀 Scheduled jobs: {', '.join(app.state.engine.scheduler.job_names())}")
        else:
            logger.info("Scheduler disabled for this process")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop the scheduler and close upstream connections."""
        current = getattr(app.state, "engine", None)
        if current is not None:
            await current.aclose()

    return app


app = create_app()
