"""Storage failure type raised by the database layer.

Every SQLAlchemy failure that escapes a ``get_db_session()`` block is
translated into a single ``StorageError`` carrying a kind and a readable
message, so callers match on one exception type.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError


class StorageErrorKind(str, Enum):
    """Category of a storage failure."""

    CONSTRAINT = "constraint"
    CONNECTION = "connection"
    OTHER = "other"


class StorageError(Exception):
    """A persistence failure with the underlying driver message attached."""

    def __init__(self, kind: StorageErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @classmethod
    def from_exception(cls, exc: SQLAlchemyError) -> StorageError:
        """Build a StorageError from a SQLAlchemy exception."""
        if isinstance(exc, IntegrityError):
            kind = StorageErrorKind.CONSTRAINT
        elif isinstance(exc, OperationalError):
            kind = StorageErrorKind.CONNECTION
        else:
            kind = StorageErrorKind.OTHER

        # DBAPIError wraps the driver exception; its text is the useful part
        if isinstance(exc, DBAPIError) and exc.orig is not None:
            message = str(exc.orig)
        else:
            message = str(exc) or exc.__class__.__name__
        return cls(kind, message)

    def __repr__(self) -> str:
        return f"StorageError(kind={self.kind.value!r}, message={self.message!r})"
