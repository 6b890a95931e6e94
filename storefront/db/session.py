"""
Database engine/session management for the storefront API.

Connection string resolution:
1) DATABASE_URL env var if set (`psql ` prefix and `postgres://` scheme are normalised).
2) Otherwise a local PostgreSQL default (see `storefront.core.config`).

SQLite URLs are accepted for tests: the engine then shares one connection across
threads and enforces foreign keys so ON DELETE rules behave like PostgreSQL.
"""

from __future__ import annotations

import logging
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.config import get_settings
from storefront.db.base import Base

logger = logging.getLogger(__name__)


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(url, pool_pre_ping=True, future=True)


DATABASE_URL = get_settings().database_url

engine: Engine = _build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


# PUBLIC_INTERFACE
def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a SQLAlchemy session and ensures it's closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# PUBLIC_INTERFACE
def init_db() -> None:
    """Create every table known to the ORM metadata (no-op for existing tables)."""
    # Models register themselves on Base.metadata at import time.
    from storefront.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured (%d tables)", len(Base.metadata.tables))


# PUBLIC_INTERFACE
def drop_db() -> None:
    """Drop every table known to the ORM metadata. Used by the test suite."""
    from storefront.db import models  # noqa: F401

    Base.metadata.drop_all(bind=engine)


# PUBLIC_INTERFACE
def db_healthcheck() -> bool:
    """
    Perform a simple DB liveness check.

    Returns:
        bool: True if DB is reachable and responds to `SELECT 1`, else False.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("Database healthcheck failed", exc_info=True)
        return False
