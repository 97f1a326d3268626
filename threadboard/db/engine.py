"""Database engine and session management.

PostgreSQL is used when DATABASE_URL is set; otherwise a local SQLite file
under .threadboard/ is used so the service runs without extra setup.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from threadboard.db.errors import StorageError

logger = logging.getLogger(__name__)

_STORE_DIR = Path(os.getcwd()) / ".threadboard"


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models."""

    pass


def get_database_url() -> str:
    """Get the database URL from environment, falling back to local SQLite."""
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{_STORE_DIR / 'threadboard.db'}"


def get_sync_database_url() -> str:
    """Get a synchronous database URL from the configured DATABASE_URL.

    Converts asyncpg URLs to psycopg2-compatible URLs for synchronous operations.
    """
    return get_database_url().replace("postgresql+asyncpg://", "postgresql://")


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on foreign key enforcement (and so ON DELETE CASCADE) for SQLite."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Lazy-initialized engine and session factory
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    """Get or create the synchronous SQLAlchemy engine."""
    global _engine
    if _engine is None:
        url = get_sync_database_url()
        if is_sqlite(url):
            _STORE_DIR.mkdir(parents=True, exist_ok=True)
            _engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                echo=False,
            )
            _enable_sqlite_foreign_keys(_engine)
        else:
            _engine = create_engine(
                url,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                echo=False,
            )
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Get a database session as a context manager.

    Commits on success and rolls back on failure. Any SQLAlchemy failure
    is re-raised as ``StorageError``.

    Usage::

        with get_db_session() as session:
            session.query(UserModel).all()
    """
    factory = get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError.from_exception(e) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Initialize the database: create all tables.

    This is primarily for development/testing. In production,
    use Alembic migrations.
    """
    # Import models to ensure they are registered with Base.metadata
    import threadboard.db.models  # noqa: F401

    engine = get_engine()
    Base.metadata.create_all(bind=engine)


def check_db_connection() -> str:
    """Check if the database is reachable.

    Returns:
        "healthy" if connection succeeds, error description otherwise.
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "healthy"
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return f"unhealthy: {e}"


def reset_engine() -> None:
    """Reset the engine and session factory.

    Useful for testing when switching database configurations.
    """
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
