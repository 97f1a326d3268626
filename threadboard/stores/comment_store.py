"""Comment persistence store."""

from __future__ import annotations

from typing import Any

from threadboard.db.engine import get_db_session
from threadboard.db.models import CommentModel
from threadboard.stores.changes import apply_changes

_IMMUTABLE_FIELDS = frozenset({"id", "thread_id", "user_id", "created_at"})


def get_comment(comment_id: int) -> dict[str, Any] | None:
    """Get a comment record by ID, or None if not found."""
    with get_db_session() as session:
        comment = session.get(CommentModel, comment_id)
        if not comment:
            return None
        return comment.to_dict()


def create_comment(thread_id: int, user_id: int, content: str) -> dict[str, Any]:
    """Create a comment on a thread.

    Raises:
        StorageError: If the insert fails (for example the thread vanished).
    """
    with get_db_session() as session:
        comment = CommentModel(thread_id=thread_id, user_id=user_id, content=content)
        session.add(comment)
        session.flush()
        return comment.to_dict()


def update_comment(comment_id: int, changes: Any) -> dict[str, Any] | None:
    """Apply a change-set to a comment.

    Returns:
        The updated comment record, or None if it does not exist.
    """
    with get_db_session() as session:
        comment = session.get(CommentModel, comment_id)
        if not comment:
            return None
        apply_changes(comment, changes, immutable=_IMMUTABLE_FIELDS)
        session.flush()
        return comment.to_dict()


def delete_comment(comment_id: int) -> bool:
    """Delete a comment. Returns True if it existed."""
    with get_db_session() as session:
        comment = session.get(CommentModel, comment_id)
        if not comment:
            return False
        session.delete(comment)
        return True
