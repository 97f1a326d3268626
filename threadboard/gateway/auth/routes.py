"""Local authentication routes: signup, login and logout."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from threadboard.db.errors import StorageError
from threadboard.gateway.auth.middleware import get_current_user, require_anonymous
from threadboard.gateway.auth.models import (
    AuthResponse,
    LoginRequest,
    Principal,
    SignupRequest,
    UserResponse,
)
from threadboard.gateway.auth.password import hash_password, verify_password
from threadboard.gateway.auth.session import end_session, start_session
from threadboard.gateway.errors import (
    USER_TAKEN_DETAIL,
    ConflictError,
    NotFoundError,
    StorageFailure,
    ValidationError,
    user_write_failure,
)
from threadboard.gateway.metrics import logins_total
from threadboard.gateway.rate_limiter import check_auth_rate
from threadboard.stores.user_store import UserConflictError, create_user, get_user_by_username

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post(
    "/join",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign Up",
    description="Create a local account with username, email and password.",
    dependencies=[Depends(require_anonymous)],
)
async def join(request: SignupRequest, http_request: Request) -> AuthResponse:
    """Register a new local account.

    Args:
        request: Signup data (username, email, password, password2).

    Returns:
        The created user.

    Raises:
        HTTPException: 400 if the passwords differ, 409 if the username
            or email is taken, 500 if storage fails.
    """
    check_auth_rate(http_request)

    if request.password != request.password2:
        raise ValidationError("Password confirmation does not match.")

    password_hash = hash_password(request.password)
    try:
        user = create_user(
            username=request.username,
            email=request.email,
            password_hash=password_hash,
        )
    except UserConflictError:
        raise ConflictError(USER_TAKEN_DETAIL)
    except StorageError as e:
        raise user_write_failure("create user", e)

    logger.info(f"New user registered: {user['username']}")
    return AuthResponse(message="Account created", user=UserResponse(**user))


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log In",
    description="Authenticate with username and password and start a cookie session.",
    dependencies=[Depends(require_anonymous)],
)
async def login(request: LoginRequest, response: Response, http_request: Request) -> AuthResponse:
    """Authenticate a user and start a session.

    Args:
        request: Login credentials (username, password).
        response: FastAPI response object for setting the session cookie.

    Returns:
        The logged-in user.

    Raises:
        HTTPException: 404 for an unknown username, 400 for a social-only
            account or a wrong password.
    """
    check_auth_rate(http_request)

    try:
        user = get_user_by_username(request.username)
    except StorageError as e:
        raise StorageFailure("look up user", e)

    if not user:
        logins_total.labels(method="password", status="failure").inc()
        raise NotFoundError("An account with this username does not exist.")

    # Checked before any hash comparison
    if user["social_only"] or not user.get("password_hash"):
        logins_total.labels(method="password", status="failure").inc()
        raise ValidationError("This account is for social login only.")

    if not verify_password(request.password, user["password_hash"]):
        logins_total.labels(method="password", status="failure").inc()
        raise ValidationError("Wrong password.")

    try:
        start_session(response, user)
    except StorageError as e:
        raise StorageFailure("start session", e)

    logins_total.labels(method="password", status="success").inc()
    logger.info(f"User logged in: {user['username']}")

    user.pop("password_hash", None)
    return AuthResponse(message="Logged in", user=UserResponse(**user))


@router.get(
    "/logout",
    summary="Log Out",
    description="Destroy the current session and clear its cookie.",
)
async def logout(
    request: Request,
    response: Response,
    current_user: Annotated[Principal, Depends(get_current_user)],
) -> dict:
    """End the caller's session.

    Returns:
        Success message.
    """
    try:
        end_session(response, request.state.session_id)
    except StorageError as e:
        raise StorageFailure("end session", e)
    logger.info(f"User logged out: {current_user.username}")
    return {"message": "Logged out successfully"}
