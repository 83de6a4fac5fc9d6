"""
Database engine and session management for the asset ledger.
SQLite connections run in WAL mode, so dashboard reads never wait on or see a
half-written ledger update, and enforce the transaction -> asset foreign key.
"""

import logging
from typing import Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA foreign_keys=ON",
)


def _apply_sqlite_pragmas(dbapi_connection, connection_record):
    """Run on every new pool connection; busy_timeout and foreign_keys are per connection."""
    cursor = dbapi_connection.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def get_engine() -> Engine:
    """Get or create the database engine for the configured URL."""
    global _engine
    if _engine is None:
        settings = get_settings()
        is_sqlite = settings.database_url.startswith("sqlite")
        _engine = create_engine(
            settings.database_url,
            echo=settings.db_echo,
            connect_args={"check_same_thread": False} if is_sqlite else {},
        )
        if is_sqlite:
            event.listen(_engine, "connect", _apply_sqlite_pragmas)
            logger.info(f"SQLite engine created for {settings.database_url} (WAL, foreign keys on)")
    return _engine


def reset_engine():
    """Dispose the current engine so the next call rebuilds it from settings."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def init_db():
    """Initialize the database and create all tables."""
    from models import Asset, Transaction, Memo

    engine = get_engine()
    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized")


def get_session() -> Session:
    """Get a new database session."""
    return Session(get_engine())
