"""FastAPI authentication dependencies."""

from __future__ import annotations

import logging

import jwt as pyjwt
from fastapi import HTTPException, Request, status

from threadboard.gateway.auth.models import Principal
from threadboard.gateway.auth.session import SESSION_COOKIE_NAME, decode_session_token, load_principal
from threadboard.gateway.errors import UnauthorizedError

logger = logging.getLogger(__name__)


def _resolve(request: Request) -> Principal | None:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None

    try:
        sid = decode_session_token(token)
    except pyjwt.InvalidTokenError as e:
        logger.debug(f"Rejected session cookie: {e}")
        return None

    principal = load_principal(sid)
    if principal is None:
        return None

    request.state.session_id = sid
    return principal


async def get_current_user(request: Request) -> Principal:
    """FastAPI dependency that resolves the session cookie to a principal.

    The sid is also stored on ``request.state.session_id`` for handlers that
    modify or end the session. Raises 401 on any failure.
    """
    principal = _resolve(request)
    if principal is None:
        raise UnauthorizedError("Login required")
    return principal


async def get_optional_user(request: Request) -> Principal | None:
    """Like get_current_user, but returns None for anonymous callers."""
    return _resolve(request)


async def require_anonymous(request: Request) -> None:
    """Send logged-in callers back to ``/``.

    Guards the signup, login and GitHub entry points.
    """
    if _resolve(request) is not None:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            detail="Already logged in",
            headers={"Location": "/"},
        )
