"""Thread router: listing, search, CRUD and likes.

Read endpoints are public. Every mutating endpoint resolves the session
principal, locates the thread (404) and, for update and delete, checks
ownership (403) before touching storage.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from pydantic import BaseModel

from threadboard.db.errors import StorageError
from threadboard.gateway.auth.middleware import get_current_user, get_optional_user
from threadboard.gateway.auth.models import Principal
from threadboard.gateway.auth.ownership import locate_thread, verify_ownership
from threadboard.gateway.errors import NotFoundError, StorageFailure, ValidationError
from threadboard.gateway.file_storage import key_from_url, remove_file
from threadboard.gateway.metrics import likes_toggled_total, threads_created_total
from threadboard.gateway.rate_limiter import check_user_api_rate
from threadboard.gateway.uploads import discard_upload, save_image_upload
from threadboard.stores import like_store, thread_store
from threadboard.stores.like_store import LikeOutcome

logger = logging.getLogger(__name__)

# Router for / and /search (site root listing)
router_root = APIRouter(tags=["threads"])

# Router for /threads and /threads/{thread_id}
router = APIRouter(prefix="/threads", tags=["threads"])


# ── Pydantic Models ──────────────────────────────────────────────────────────


class ThreadChanges(BaseModel):
    """Change-set for a thread update. Unset or blank fields are kept."""

    content: str | None = None
    file_url: str | None = None


class LikeRequest(BaseModel):
    """Request model for the like toggle."""

    like: bool


class LikeResponse(BaseModel):
    """Response model for the like toggle."""

    message: str
    outcome: LikeOutcome
    like_count: int


_LIKE_STATUS = {
    LikeOutcome.ADDED: (status.HTTP_201_CREATED, "Liked"),
    LikeOutcome.ALREADY_ABSENT: (status.HTTP_200_OK, "Already not liked"),
    LikeOutcome.ALREADY_LIKED: (status.HTTP_200_OK, "Already liked"),
    LikeOutcome.REMOVED: (status.HTTP_204_NO_CONTENT, "Like removed"),
}


# ── Root Endpoints (/, /search) ──────────────────────────────────────────────


@router_root.get("/", summary="List Threads")
async def list_threads() -> list[dict[str, Any]]:
    """List all threads, newest first, each with its author."""
    try:
        return thread_store.list_threads()
    except StorageError as e:
        raise StorageFailure("list threads", e)


@router_root.get("/search", summary="Search Threads")
async def search_threads(keyword: str | None = Query(default=None)) -> list[dict[str, Any]]:
    """Search thread content case-insensitively.

    Raises:
        HTTPException: 400 if no keyword is given.
    """
    if not keyword or not keyword.strip():
        raise ValidationError("A search keyword is required.")
    try:
        return thread_store.search_threads(keyword.strip())
    except StorageError as e:
        raise StorageFailure("search threads", e)


# ── Thread Endpoints (/threads) ──────────────────────────────────────────────


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Thread")
async def create_thread(
    current_user: Annotated[Principal, Depends(get_current_user)],
    content: Annotated[str, Form(min_length=1)],
    photo: Annotated[UploadFile | None, File()] = None,
) -> dict[str, Any]:
    """Create a thread owned by the caller, with an optional photo.

    Returns:
        The created thread.
    """
    if not content.strip():
        raise ValidationError("Thread content is required.")
    check_user_api_rate(current_user.id)
    file_url = await save_image_upload(photo)

    try:
        thread = thread_store.create_thread(current_user.id, content, file_url)
    except StorageError as e:
        discard_upload(file_url)
        raise StorageFailure("create thread", e)

    threads_created_total.inc()
    logger.info(f"User {current_user.id} created thread {thread['id']}")
    return thread


@router.get("/{thread_id}", summary="Read Thread")
async def read_thread(
    thread_id: str,
    current_user: Annotated[Principal | None, Depends(get_optional_user)],
) -> dict[str, Any]:
    """Show a thread with its author, comments and like count.

    Each read increments the view counter.
    """
    thread = locate_thread(thread_id)
    try:
        thread_store.record_view(thread["id"])
        detail = thread_store.get_thread_detail(thread["id"])
        if detail is None:
            raise NotFoundError("Thread not found")
        detail["liked"] = (
            like_store.is_liked(thread["id"], current_user.id) if current_user else False
        )
    except StorageError as e:
        raise StorageFailure("read thread", e)
    return detail


@router.put("/{thread_id}", summary="Update Thread")
async def update_thread(
    thread_id: str,
    current_user: Annotated[Principal, Depends(get_current_user)],
    content: Annotated[str | None, Form()] = None,
    photo: Annotated[UploadFile | None, File()] = None,
) -> dict[str, Any]:
    """Update a thread's content and/or photo. Owner only.

    A request without a new photo keeps the stored one.
    """
    thread = locate_thread(thread_id)
    verify_ownership(thread, current_user, "thread")

    file_url = await save_image_upload(photo)
    changes = ThreadChanges(content=content, file_url=file_url)

    try:
        updated = thread_store.update_thread(thread["id"], changes)
    except StorageError as e:
        discard_upload(file_url)
        raise StorageFailure("update thread", e)

    if updated is None:
        discard_upload(file_url)
        raise NotFoundError("Thread not found")
    return updated


@router.delete("/{thread_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Thread")
async def delete_thread(
    thread_id: str,
    current_user: Annotated[Principal, Depends(get_current_user)],
) -> Response:
    """Delete a thread with its comments and likes. Owner only."""
    thread = locate_thread(thread_id)
    verify_ownership(thread, current_user, "thread")

    try:
        thread_store.delete_thread(thread["id"])
    except StorageError as e:
        raise StorageFailure("delete thread", e)

    if thread.get("file_url"):
        remove_file(key_from_url(thread["file_url"]))

    logger.info(f"User {current_user.id} deleted thread {thread['id']}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{thread_id}/like", summary="Toggle Like", response_model=LikeResponse)
async def toggle_like(
    thread_id: str,
    request: LikeRequest,
    response: Response,
    current_user: Annotated[Principal, Depends(get_current_user)],
) -> Any:
    """Like or unlike a thread.

    Answers 201 when a like is added, 204 when one is removed and 200 when
    the thread was already in the requested state.
    """
    thread = locate_thread(thread_id)
    check_user_api_rate(current_user.id)

    try:
        outcome = like_store.toggle_like(thread["id"], current_user.id, request.like)
        like_count = like_store.count_likes(thread["id"])
    except StorageError as e:
        raise StorageFailure("toggle like", e)

    likes_toggled_total.labels(outcome=outcome.value).inc()
    status_code, message = _LIKE_STATUS[outcome]
    if status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=status_code)

    response.status_code = status_code
    return LikeResponse(message=message, outcome=outcome, like_count=like_count)
