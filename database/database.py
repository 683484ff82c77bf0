"""Database helpers: engines, session factories and DB initialization.

Provides read/write session factories and an `init_db` helper that creates
tables and bootstraps the configured admin account.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core import config
from core.logger import get_logger
from .models import Base

logger = get_logger("database")


def _engine_for(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


# Engines
write_engine = _engine_for(config.WRITE_DATABASE_URL)
read_engine = write_engine if config.READ_DATABASE_URL == config.WRITE_DATABASE_URL else _engine_for(config.READ_DATABASE_URL)

# Session factories
WriteSessionLocal = sessionmaker(bind=write_engine, autoflush=False)
ReadSessionLocal = sessionmaker(bind=read_engine, autoflush=False)


def init_db():
    """Initialize database schema and bootstrap the admin account.

    Creates all tables using SQLAlchemy models. When ADMIN_USERNAME and
    ADMIN_PASSWORD are configured and no such user exists yet, an admin
    (permission level 0) is created.
    """
    Base.metadata.create_all(bind=write_engine)
    if not (config.ADMIN_USERNAME and config.ADMIN_PASSWORD):
        return

    # Imported here: user_service depends on this module's session factories
    from services.user_service import user_service

    session = WriteSessionLocal()
    try:
        user_service.ensure_admin(session, config.ADMIN_USERNAME, config.ADMIN_PASSWORD)
    finally:
        session.close()


def reset_db():
    """Drop and recreate every table. Used by the test-suite."""
    Base.metadata.drop_all(bind=write_engine)
    Base.metadata.create_all(bind=write_engine)
    logger.info("Database schema recreated")


# Convenience generators for dependency injection
def get_write_session():
    """Yield a write-enabled SQLAlchemy session for the request scope.

    Use this generator as a FastAPI dependency to ensure the session is
    properly closed after the request completes.
    """
    db = WriteSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_read_session():
    """Yield a read-only SQLAlchemy session for the request scope.

    Used for read endpoints where routing reads to a replica may be desired.
    """
    db = ReadSessionLocal()
    try:
        yield db
    finally:
        db.close()
