"""Database module for threadboard.

Provides SQLAlchemy engine, session management, ORM models and the
StorageError raised for every persistence failure.
"""

from threadboard.db.engine import check_db_connection, get_db_session, get_engine, init_db
from threadboard.db.errors import StorageError, StorageErrorKind

__all__ = [
    "StorageError",
    "StorageErrorKind",
    "check_db_connection",
    "get_db_session",
    "get_engine",
    "init_db",
]
