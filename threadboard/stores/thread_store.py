"""Thread persistence store.

Threads are returned as plain dicts. Listing and detail views attach a
small ``author`` dict so callers never need a second lookup.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import joinedload, selectinload

from threadboard.db.engine import get_db_session
from threadboard.db.models import LikeModel, ThreadModel, UserModel
from threadboard.stores.changes import apply_changes

# user_id is fixed at creation; views only move through record_view()
_IMMUTABLE_FIELDS = frozenset({"id", "user_id", "views", "created_at"})


def _author(user: UserModel | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "nickname": user.nickname,
        "avatar_url": user.avatar_url,
    }


def _with_author(thread: ThreadModel) -> dict[str, Any]:
    result = thread.to_dict()
    result["author"] = _author(thread.user)
    return result


def list_threads(limit: int | None = None) -> list[dict[str, Any]]:
    """List threads newest first, each with its author."""
    with get_db_session() as session:
        query = (
            session.query(ThreadModel)
            .options(joinedload(ThreadModel.user))
            .order_by(ThreadModel.created_at.desc(), ThreadModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [_with_author(t) for t in query.all()]


def search_threads(keyword: str) -> list[dict[str, Any]]:
    """Case-insensitive substring search over thread content, newest first."""
    with get_db_session() as session:
        threads = (
            session.query(ThreadModel)
            .options(joinedload(ThreadModel.user))
            .filter(ThreadModel.content.ilike(f"%{keyword}%"))
            .order_by(ThreadModel.created_at.desc(), ThreadModel.id.desc())
            .all()
        )
        return [_with_author(t) for t in threads]


def get_thread(thread_id: int) -> dict[str, Any] | None:
    """Get a thread record by ID, or None if not found."""
    with get_db_session() as session:
        thread = session.get(ThreadModel, thread_id)
        if not thread:
            return None
        return thread.to_dict()


def get_thread_detail(thread_id: int) -> dict[str, Any] | None:
    """Get a thread with its author, comments and like count.

    Returns:
        The thread dict with ``author``, ``comments`` (oldest first, each with
        its author) and ``like_count``, or None if not found.
    """
    with get_db_session() as session:
        thread = (
            session.query(ThreadModel)
            .options(
                joinedload(ThreadModel.user),
                selectinload(ThreadModel.comments),
            )
            .filter(ThreadModel.id == thread_id)
            .first()
        )
        if not thread:
            return None

        commenter_ids = {c.user_id for c in thread.comments}
        commenters = {}
        if commenter_ids:
            commenters = {
                u.id: u for u in session.query(UserModel).filter(UserModel.id.in_(commenter_ids)).all()
            }

        like_count = (
            session.query(func.count())
            .select_from(LikeModel)
            .filter(LikeModel.thread_id == thread_id)
            .scalar()
        )

        result = _with_author(thread)
        result["comments"] = []
        for comment in thread.comments:
            entry = comment.to_dict()
            entry["author"] = _author(commenters.get(comment.user_id))
            result["comments"].append(entry)
        result["like_count"] = like_count or 0
        return result


def record_view(thread_id: int) -> None:
    """Increment a thread's view counter in the database."""
    with get_db_session() as session:
        session.query(ThreadModel).filter(ThreadModel.id == thread_id).update(
            {ThreadModel.views: ThreadModel.views + 1},
            synchronize_session=False,
        )


def create_thread(user_id: int, content: str, file_url: str | None = None) -> dict[str, Any]:
    """Create a thread owned by ``user_id``.

    Returns:
        The created thread record.

    Raises:
        StorageError: If the insert fails.
    """
    with get_db_session() as session:
        thread = ThreadModel(user_id=user_id, content=content, file_url=file_url)
        session.add(thread)
        session.flush()
        return thread.to_dict()


def update_thread(thread_id: int, changes: Any) -> dict[str, Any] | None:
    """Apply a change-set to a thread.

    Fields left out of the change-set (such as ``file_url`` when no new photo
    is sent) keep their stored values.

    Returns:
        The updated thread record, or None if the thread does not exist.
    """
    with get_db_session() as session:
        thread = session.get(ThreadModel, thread_id)
        if not thread:
            return None
        apply_changes(thread, changes, immutable=_IMMUTABLE_FIELDS)
        session.flush()
        return thread.to_dict()


def delete_thread(thread_id: int) -> dict[str, Any] | None:
    """Delete a thread together with its comments and likes.

    Returns:
        The deleted thread record, or None if it did not exist.
    """
    with get_db_session() as session:
        thread = session.get(ThreadModel, thread_id)
        if not thread:
            return None
        record = thread.to_dict()
        session.delete(thread)
        return record

