"""Comment router, nested under a thread.

The thread is located first; the comment must then belong to that thread.
Update and delete are limited to the comment's author.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, StringConstraints

from threadboard.db.errors import StorageError
from threadboard.gateway.auth.middleware import get_current_user
from threadboard.gateway.auth.models import Principal
from threadboard.gateway.auth.ownership import locate_comment, locate_thread, verify_ownership
from threadboard.gateway.errors import NotFoundError, StorageFailure
from threadboard.gateway.metrics import comments_created_total
from threadboard.gateway.rate_limiter import check_user_api_rate
from threadboard.stores import comment_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/threads/{thread_id}/comment", tags=["comments"])


class CommentCreateRequest(BaseModel):
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CommentChanges(BaseModel):
    """Change-set for a comment update. Unset or blank content is kept."""

    content: str | None = None


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Comment")
async def create_comment(
    thread_id: str,
    request: CommentCreateRequest,
    current_user: Annotated[Principal, Depends(get_current_user)],
) -> dict[str, Any]:
    """Comment on a thread as the caller."""
    thread = locate_thread(thread_id)
    check_user_api_rate(current_user.id)

    try:
        comment = comment_store.create_comment(thread["id"], current_user.id, request.content)
    except StorageError as e:
        raise StorageFailure("create comment", e)

    comments_created_total.inc()
    return comment


@router.put("/{comment_id}", summary="Update Comment")
async def update_comment(
    thread_id: str,
    comment_id: str,
    request: CommentChanges,
    current_user: Annotated[Principal, Depends(get_current_user)],
) -> dict[str, Any]:
    """Edit a comment. Author only."""
    thread = locate_thread(thread_id)
    comment = locate_comment(comment_id, thread)
    verify_ownership(comment, current_user, "comment")

    try:
        updated = comment_store.update_comment(comment["id"], request)
    except StorageError as e:
        raise StorageFailure("update comment", e)

    if updated is None:
        raise NotFoundError("Comment not found")
    return updated


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Comment")
async def delete_comment(
    thread_id: str,
    comment_id: str,
    current_user: Annotated[Principal, Depends(get_current_user)],
) -> Response:
    """Delete a comment. Author only."""
    thread = locate_thread(thread_id)
    comment = locate_comment(comment_id, thread)
    verify_ownership(comment, current_user, "comment")

    try:
        comment_store.delete_comment(comment["id"])
    except StorageError as e:
        raise StorageFailure("delete comment", e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
