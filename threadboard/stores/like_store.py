"""Like toggle state machine.

The liked state of a (thread, user) pair is the existence of its row in
``likes``. Each toggle request asks for a target state and yields one of
four outcomes:

    current   requested   action   outcome
    -------   ---------   ------   --------------
    no like   like        insert   ADDED
    no like   unlike      none     ALREADY_ABSENT
    liked     like        none     ALREADY_LIKED
    liked     unlike      delete   REMOVED

Two racing inserts for the same pair collide on the composite primary key;
the loser's commit fails and surfaces as ``StorageError``.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import func

from threadboard.db.engine import get_db_session
from threadboard.db.models import LikeModel


class LikeOutcome(str, Enum):
    """Result of a like toggle request."""

    ADDED = "added"
    ALREADY_ABSENT = "already_absent"
    ALREADY_LIKED = "already_liked"
    REMOVED = "removed"


def is_liked(thread_id: int, user_id: int) -> bool:
    with get_db_session() as session:
        return session.get(LikeModel, (thread_id, user_id)) is not None


def count_likes(thread_id: int) -> int:
    with get_db_session() as session:
        return (
            session.query(func.count())
            .select_from(LikeModel)
            .filter(LikeModel.thread_id == thread_id)
            .scalar()
        ) or 0


def toggle_like(thread_id: int, user_id: int, like: bool) -> LikeOutcome:
    """Move a (thread, user) like toward the requested state.

    Args:
        thread_id: The thread being liked or unliked. Must exist.
        user_id: The acting user.
        like: True to like, False to unlike.

    Returns:
        The outcome of the transition.

    Raises:
        StorageError: If the insert or delete fails, including a duplicate
            insert lost to a concurrent request.
    """
    with get_db_session() as session:
        existing = session.get(LikeModel, (thread_id, user_id))

        if existing is None:
            if not like:
                return LikeOutcome.ALREADY_ABSENT
            session.add(LikeModel(thread_id=thread_id, user_id=user_id))
            session.flush()
            return LikeOutcome.ADDED

        if like:
            return LikeOutcome.ALREADY_LIKED
        session.delete(existing)
        return LikeOutcome.REMOVED
