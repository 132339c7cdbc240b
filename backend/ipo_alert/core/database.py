"""
Database connection and session management.
"""
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from ipo_alert.core.config import DATABASE_DSN

logger = logging.getLogger(__name__)

if not DATABASE_DSN:
    raise ValueError("DATABASE_DSN not configured. Create ipo_alert/config_local.py from config_local.example.py")


def create_db_engine(dsn: str):
    """Create an engine with pool settings suited to the DSN."""
    if dsn.startswith("sqlite"):
        # Scheduler jobs and request handlers share the engine across threads
        return create_engine(dsn, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(
        dsn,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_size=10,
        max_overflow=20,
        pool_timeout=60,
        echo=False,  # Set to True for SQL debugging
    )


engine = create_db_engine(DATABASE_DSN)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for FastAPI to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        try:
            db.close()
        except Exception as e:
            # Connection may already be gone; the session is discarded either way
            logger.warning(f"Error closing database session (connection may be lost): {str(e)}")
