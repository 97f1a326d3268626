"""GitHub OAuth login.

``/github`` sends the browser to GitHub's authorize page. GitHub returns to
``/github/callback`` with a code, which is exchanged for an access token and
used to read the user's profile and verified primary email. A first-time
GitHub user gets a social-only account (no local password).
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import RedirectResponse

from threadboard.db.errors import StorageError
from threadboard.gateway.auth.middleware import require_anonymous
from threadboard.gateway.auth.session import start_session
from threadboard.gateway.config import get_gateway_config
from threadboard.gateway.errors import (
    USER_TAKEN_DETAIL,
    ConflictError,
    StorageFailure,
    ValidationError,
    user_write_failure,
)
from threadboard.gateway.metrics import logins_total
from threadboard.stores.user_store import UserConflictError, create_user, get_user_by_email, is_taken

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"], dependencies=[Depends(require_anonymous)])

GITHUB_SCOPE = "read:user user:email"
_TIMEOUT = 10.0


def build_authorize_url() -> str:
    """URL of GitHub's OAuth authorize page for this application."""
    github = get_gateway_config().github
    params = {
        "client_id": github.client_id or "",
        "allow_signup": "false",
        "scope": GITHUB_SCOPE,
    }
    return f"{github.auth_url}/authorize?{urlencode(params)}"


async def _exchange_code(code: str) -> str | None:
    """Trade an OAuth code for an access token, or None if GitHub refuses."""
    github = get_gateway_config().github
    params = {
        "client_id": github.client_id or "",
        "client_secret": github.client_secret or "",
        "code": code,
    }
    async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
        response = await client.post(
            f"{github.auth_url}/access_token",
            params=params,
            headers={"Accept": "application/json"},
        )
    if response.status_code != 200:
        logger.warning(f"GitHub token exchange failed: status {response.status_code}")
        return None
    return response.json().get("access_token")


async def _fetch_profile(access_token: str) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Fetch the GitHub user and their email list."""
    api_url = get_gateway_config().github.api_url
    headers = {
        "Authorization": f"token {access_token}",
        "Accept": "application/vnd.github+json",
    }
    async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
        user_response = await client.get(f"{api_url}/user", headers=headers)
        user_response.raise_for_status()
        emails_response = await client.get(f"{api_url}/user/emails", headers=headers)
        emails_response.raise_for_status()
    return user_response.json(), emails_response.json()


def _primary_verified_email(emails: list[dict[str, Any]]) -> str | None:
    for entry in emails:
        if entry.get("primary") and entry.get("verified"):
            return entry.get("email")
    return None


def _find_or_create_user(profile: dict[str, Any], email: str) -> dict[str, Any]:
    user = get_user_by_email(email)
    if user:
        return user

    username = profile.get("login") or email.split("@")[0]
    if is_taken(username, None):
        raise ConflictError("This username is already taken.")

    user = create_user(
        username=username,
        email=email,
        password_hash=None,
        nickname=profile.get("name"),
        avatar_url=profile.get("avatar_url"),
        social_only=True,
    )
    logger.info(f"Created social-only user from GitHub: {username}")
    return user


@router.get(
    "/github",
    summary="GitHub Login",
    description="Redirect to GitHub's authorize page.",
)
async def github_login() -> RedirectResponse:
    return RedirectResponse(build_authorize_url(), status_code=status.HTTP_302_FOUND)


@router.get(
    "/github/callback",
    summary="GitHub Callback",
    description="Finish GitHub login, creating a social-only account on first use.",
)
async def github_callback(code: str = Query(default="")) -> Response:
    """Complete the OAuth exchange and start a session.

    Raises:
        HTTPException: 400 if GitHub returns no token or no verified primary
            email, 409 if a new account's username is taken, 500 on storage
            failure.
    """
    try:
        access_token = await _exchange_code(code) if code else None
        if not access_token:
            raise ValidationError("GitHub token not valid.")

        profile, emails = await _fetch_profile(access_token)
    except httpx.HTTPError as e:
        logins_total.labels(method="github", status="failure").inc()
        logger.warning(f"GitHub request failed: {e}")
        raise ValidationError("GitHub login failed.")
    except ValidationError:
        logins_total.labels(method="github", status="failure").inc()
        raise

    email = _primary_verified_email(emails)
    if not email:
        logins_total.labels(method="github", status="failure").inc()
        raise ValidationError("GitHub email not available.")

    redirect = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    try:
        user = _find_or_create_user(profile, email)
    except UserConflictError:
        raise ConflictError(USER_TAKEN_DETAIL)
    except StorageError as e:
        raise user_write_failure("create GitHub user", e)

    try:
        start_session(redirect, user)
    except StorageError as e:
        raise StorageFailure("log in with GitHub", e)

    logins_total.labels(method="github", status="success").inc()
    logger.info(f"User logged in with GitHub: {user['username']}")
    return redirect
