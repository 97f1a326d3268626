"""Cookie sessions: signed sid tokens backed by the sessions table.

The cookie value is a short JWT holding only the session id. The principal
lives server-side, so logging out or editing the profile takes effect
immediately without reissuing tokens.
"""

from __future__ import annotations

import logging
import os
import secrets
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import jwt
from fastapi import Response

from threadboard.gateway.auth.models import Principal
from threadboard.gateway.config import get_gateway_config
from threadboard.stores import session_store

logger = logging.getLogger(__name__)

_STORE_DIR = Path(os.getcwd()) / ".threadboard"
_SECRET_FILE = _STORE_DIR / "session-secret.key"

SESSION_COOKIE_NAME = "threadboard_session"
ALGORITHM = "HS256"


def _get_secret_key() -> str:
    """Get or create the session signing secret.

    The secret is read from the SESSION_SECRET_KEY environment variable.
    If not set, a random secret is generated and persisted to disk.

    When REQUIRE_ENV_SECRETS is set (production mode), SESSION_SECRET_KEY
    is required and the file-based fallback is disabled.
    """
    env_secret = os.environ.get("SESSION_SECRET_KEY")
    if env_secret:
        return env_secret

    if os.environ.get("REQUIRE_ENV_SECRETS"):
        raise RuntimeError(
            "SESSION_SECRET_KEY environment variable is required when "
            "REQUIRE_ENV_SECRETS is set."
        )

    _STORE_DIR.mkdir(parents=True, exist_ok=True)
    if _SECRET_FILE.exists():
        return _SECRET_FILE.read_text(encoding="utf-8").strip()

    secret = secrets.token_urlsafe(64)
    tmp_path = _SECRET_FILE.with_suffix(".tmp")
    tmp_path.write_text(secret, encoding="utf-8")
    os.replace(tmp_path, _SECRET_FILE)
    try:
        os.chmod(_SECRET_FILE, 0o600)
    except OSError:
        pass
    return secret


def _max_age() -> timedelta:
    return timedelta(days=get_gateway_config().session_max_age_days)


def create_session_token(sid: str) -> str:
    """Sign a session id for the cookie.

    Args:
        sid: The server-side session id.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sid": sid,
        "type": "session",
        "iat": now,
        "exp": now + _max_age(),
    }
    return jwt.encode(payload, _get_secret_key(), algorithm=ALGORITHM)


def decode_session_token(token: str) -> str:
    """Verify a session cookie and return its session id.

    Raises:
        jwt.InvalidTokenError: If the token is expired, tampered with,
            of the wrong type or missing its sid.
    """
    payload = jwt.decode(token, _get_secret_key(), algorithms=[ALGORITHM])
    if payload.get("type") != "session":
        raise jwt.InvalidTokenError("Invalid token type")
    sid = payload.get("sid")
    if not sid:
        raise jwt.InvalidTokenError("Invalid token payload")
    return sid


def _session_data(principal: Principal) -> dict[str, Any]:
    return {"logged_in": True, "user": principal.model_dump()}


def set_session_cookie(response: Response, token: str) -> None:
    """Set the session token as an httpOnly cookie."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=get_gateway_config().production,
        samesite="lax",
        max_age=int(_max_age().total_seconds()),
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Clear the session cookie."""
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")


def start_session(response: Response, user: dict[str, Any]) -> Principal:
    """Log a user in: persist a session and set its cookie on ``response``.

    Expired sessions left behind by clients that never came back are
    purged first.

    Args:
        response: The outgoing response.
        user: The single user record being logged in.

    Returns:
        The principal stored in the session.
    """
    principal = Principal.from_user(user)
    session_store.purge_expired_sessions()
    sid = session_store.create_session(_session_data(principal), _max_age())
    set_session_cookie(response, create_session_token(sid))
    logger.info(f"Session started for user {principal.id}")
    return principal


def load_principal(sid: str) -> Principal | None:
    """Load the principal of a live session, or None."""
    data = session_store.get_session(sid)
    if not data or not data.get("logged_in") or not data.get("user"):
        return None
    return Principal.model_validate(data["user"])


def refresh_principal(sid: str, user: dict[str, Any]) -> Principal:
    """Replace the principal of an existing session with a fresh user record."""
    principal = Principal.from_user(user)
    session_store.update_session_data(sid, _session_data(principal))
    return principal


def end_session(response: Response, sid: str) -> None:
    """Destroy a session row and clear its cookie."""
    session_store.destroy_session(sid)
    clear_session_cookie(response)
