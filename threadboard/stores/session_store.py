"""Server-side session store.

Each login creates a row keyed by a random sid. The cookie carries only the
signed sid; the principal lives in the row's ``data`` column.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from threadboard.db.engine import get_db_session
from threadboard.db.models import SessionModel

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def create_session(data: dict[str, Any], max_age: timedelta) -> str:
    """Persist a new session.

    Args:
        data: JSON-serializable session payload.
        max_age: How long the session stays valid.

    Returns:
        The new session id.
    """
    sid = secrets.token_urlsafe(32)
    with get_db_session() as session:
        session.add(
            SessionModel(
                sid=sid,
                data=data,
                expires_at=datetime.now(UTC) + max_age,
            )
        )
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """Load a session payload by sid.

    Expired rows are deleted and reported as missing.

    Returns:
        The session data, or None if the session is unknown or expired.
    """
    with get_db_session() as session:
        row = session.get(SessionModel, sid)
        if row is None:
            return None
        if _as_utc(row.expires_at) <= datetime.now(UTC):
            session.delete(row)
            return None
        return dict(row.data or {})


def update_session_data(sid: str, data: dict[str, Any]) -> bool:
    """Replace a session's payload, keeping its expiry.

    Returns:
        True if the session existed and was updated.
    """
    with get_db_session() as session:
        row = session.get(SessionModel, sid)
        if row is None:
            return False
        row.data = data
        return True


def destroy_session(sid: str) -> bool:
    """Delete a session.

    Returns:
        True if a row was deleted, False if it did not exist.
    """
    with get_db_session() as session:
        row = session.get(SessionModel, sid)
        if row is None:
            return False
        session.delete(row)
        return True


def purge_expired_sessions() -> int:
    """Delete every expired session row.

    Returns:
        Number of rows removed.
    """
    with get_db_session() as session:
        count = (
            session.query(SessionModel)
            .filter(SessionModel.expires_at <= datetime.now(UTC))
            .delete(synchronize_session=False)
        )
    if count:
        logger.info(f"Purged {count} expired sessions")
    return count
