"""Resource lookup and ownership checks for mutating endpoints.

Every handler that changes a thread or comment runs the same sequence:
locate the resource (404 if absent), then verify the principal owns it
(403 otherwise). Not-found always wins over forbidden.
"""

from __future__ import annotations

from typing import Any

from threadboard.gateway.auth.models import Principal
from threadboard.gateway.errors import ForbiddenError, NotFoundError
from threadboard.stores import comment_store, thread_store, user_store


def parse_id(raw_id: str | int) -> int | None:
    """Parse a path id; anything but a positive decimal integer is None."""
    if isinstance(raw_id, int):
        return raw_id if raw_id > 0 else None
    if not raw_id.isdecimal() or not raw_id.isascii():
        return None
    value = int(raw_id)
    return value if value > 0 else None


def locate_thread(raw_id: str | int) -> dict[str, Any]:
    """Find a thread by its path id.

    Raises:
        NotFoundError: If the id is malformed or no such thread exists.
    """
    thread_id = parse_id(raw_id)
    thread = thread_store.get_thread(thread_id) if thread_id is not None else None
    if thread is None:
        raise NotFoundError("Thread not found")
    return thread


def locate_comment(raw_cid: str | int, thread: dict[str, Any]) -> dict[str, Any]:
    """Find a comment by its path id within an already located thread.

    Raises:
        NotFoundError: If the id is malformed, the comment does not exist,
            or it belongs to a different thread.
    """
    comment_id = parse_id(raw_cid)
    comment = comment_store.get_comment(comment_id) if comment_id is not None else None
    if comment is None or comment["thread_id"] != thread["id"]:
        raise NotFoundError("Comment not found")
    return comment


def locate_user(raw_id: str | int) -> dict[str, Any]:
    """Find a user's public profile by its path id.

    Raises:
        NotFoundError: If the id is malformed or no such user exists.
    """
    user_id = parse_id(raw_id)
    profile = user_store.get_user_profile(user_id) if user_id is not None else None
    if profile is None:
        raise NotFoundError("User not found")
    return profile


def verify_ownership(resource: dict[str, Any], principal: Principal, kind: str = "resource") -> None:
    """Verify that the principal owns a located resource.

    Args:
        resource: A record carrying the owning ``user_id``.
        principal: The authenticated caller.
        kind: Resource name used in the error message.

    Raises:
        ForbiddenError: If the resource belongs to another user.
    """
    if resource["user_id"] != principal.id:
        raise ForbiddenError(f"You do not own this {kind}")
