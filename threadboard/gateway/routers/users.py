"""User router: public profiles, profile editing and password changes."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel, EmailStr

from threadboard.db.errors import StorageError
from threadboard.gateway.auth.middleware import get_current_user
from threadboard.gateway.auth.models import ChangePasswordRequest, Principal, UserResponse
from threadboard.gateway.auth.ownership import locate_user
from threadboard.gateway.auth.password import hash_password, verify_password
from threadboard.gateway.auth.session import refresh_principal
from threadboard.gateway.errors import (
    USER_TAKEN_DETAIL,
    ConflictError,
    NotFoundError,
    StorageFailure,
    ValidationError,
    user_write_failure,
)
from threadboard.gateway.uploads import discard_upload, save_image_upload
from threadboard.stores import user_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class ProfileChanges(BaseModel):
    """Change-set for a profile edit. Unset or blank fields are kept."""

    username: str | None = None
    email: str | None = None
    nickname: str | None = None
    location: str | None = None
    avatar_url: str | None = None


@router.put("/edit", response_model=UserResponse, summary="Edit Profile")
async def edit_profile(
    request: Request,
    current_user: Annotated[Principal, Depends(get_current_user)],
    username: Annotated[str | None, Form()] = None,
    email: Annotated[EmailStr | None, Form()] = None,
    nickname: Annotated[str | None, Form()] = None,
    location: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
) -> UserResponse:
    """Edit the caller's profile.

    Only fields sent with a non-empty value change. The session principal
    is refreshed from the updated record.

    Raises:
        HTTPException: 409 if the new username or email belongs to someone else.
    """
    avatar_url = await save_image_upload(avatar)
    changes = ProfileChanges(
        username=username,
        email=email,
        nickname=nickname,
        location=location,
        avatar_url=avatar_url,
    )

    try:
        updated = user_store.update_user(current_user.id, changes)
    except user_store.UserConflictError:
        discard_upload(avatar_url)
        raise ConflictError(USER_TAKEN_DETAIL)
    except StorageError as e:
        discard_upload(avatar_url)
        raise user_write_failure("update profile", e)

    if updated is None:
        discard_upload(avatar_url)
        raise NotFoundError("User not found")

    try:
        refresh_principal(request.state.session_id, updated)
    except StorageError as e:
        raise StorageFailure("refresh session", e)

    logger.info(f"User {current_user.id} updated their profile")
    return UserResponse(**updated)


@router.post("/change-pw", summary="Change Password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: Annotated[Principal, Depends(get_current_user)],
) -> dict:
    """Change the caller's local password.

    Raises:
        HTTPException: 400 for social-only accounts, a wrong current
            password or a confirmation mismatch.
    """
    if current_user.social_only:
        raise ValidationError("Social login accounts cannot change password.")

    try:
        user = user_store.get_user_by_id(current_user.id)
    except StorageError as e:
        raise StorageFailure("look up user", e)
    if user is None:
        raise NotFoundError("User not found")

    if not verify_password(request.old_password, user.get("password_hash")):
        raise ValidationError("The current password is incorrect.")

    if request.new_password != request.new_password2:
        raise ValidationError("The new password does not match the confirmation.")

    try:
        user_store.set_password_hash(current_user.id, hash_password(request.new_password))
    except StorageError as e:
        raise StorageFailure("change password", e)

    logger.info(f"User {current_user.id} changed their password")
    return {"message": "Password changed"}


@router.get("/{user_id}", summary="User Profile")
async def user_profile(user_id: str) -> dict[str, Any]:
    """Show a user's public profile with their threads."""
    try:
        return locate_user(user_id)
    except StorageError as e:
        raise StorageFailure("load profile", e)
