"""
Database engine and session management for the trading journal.
This module is separate from the repositories to avoid circular imports.
Uses SQLModel; SQLite runs in Write-Ahead Logging (WAL) mode and every
SQLite transaction takes the write lock up front (BEGIN IMMEDIATE) so that
concurrent writers are serialized instead of racing on the same lots.
"""

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine
from typing import Optional
import logging

from config import get_settings

logger = logging.getLogger(__name__)

# Global engine instance
_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        if settings.is_sqlite:
            _engine = create_engine(
                settings.database_url,
                echo=settings.db_echo,
                connect_args={
                    "check_same_thread": False,  # Allow use across threads
                    "timeout": settings.sqlite_busy_timeout_ms / 1000,
                }
            )
            _install_sqlite_hooks(_engine, settings.sqlite_busy_timeout_ms)
        else:
            _engine = create_engine(settings.database_url, echo=settings.db_echo)
        logger.info(f"Database engine created for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def _install_sqlite_hooks(engine: Engine, busy_timeout_ms: int) -> None:
    """
    Configure every pooled SQLite connection.

    pysqlite's implicit transaction handling is disabled so that the
    "begin" hook can issue BEGIN IMMEDIATE itself.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            cursor.execute("PRAGMA journal_mode=WAL")
        except Exception as e:
            logger.warning(f"Could not apply SQLite pragmas: {e}")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_db():
    """Initialize the database and create all tables."""
    import models  # noqa: F401  registers every table on SQLModel.metadata

    engine = get_engine()
    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized")


def get_session() -> Session:
    """Get a new database session; loaded attributes survive the commit."""
    return Session(get_engine(), expire_on_commit=False)


def dispose_engine():
    """Drop the global engine (useful for testing or after changing settings)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
