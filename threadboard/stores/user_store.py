"""User persistence store backed by SQLAlchemy."""

from __future__ import annotations

from typing import Any

from sqlalchemy import or_

from threadboard.db.engine import get_db_session
from threadboard.db.models import ThreadModel, UserModel
from threadboard.stores.changes import apply_changes, collect_changes

_IMMUTABLE_FIELDS = frozenset({"id", "password_hash", "social_only", "created_at"})


class UserConflictError(ValueError):
    """The username or email already belongs to another user."""


def _normalize_email(email: str) -> str:
    return email.lower().strip()


def is_taken(username: str | None, email: str | None, exclude_user_id: int | None = None) -> bool:
    """Check whether a username or email already belongs to a user.

    Args:
        username: Username to check (ignored when None).
        email: Email to check (ignored when None).
        exclude_user_id: A user allowed to hold the value (the one editing).

    Returns:
        True if another user already uses the username or the email.
    """
    conditions = []
    if username:
        conditions.append(UserModel.username == username)
    if email:
        conditions.append(UserModel.email == _normalize_email(email))
    if not conditions:
        return False

    with get_db_session() as session:
        query = session.query(UserModel.id).filter(or_(*conditions))
        if exclude_user_id is not None:
            query = query.filter(UserModel.id != exclude_user_id)
        return query.first() is not None


def create_user(
    username: str,
    email: str,
    password_hash: str | None,
    nickname: str | None = None,
    avatar_url: str | None = None,
    social_only: bool = False,
) -> dict[str, Any]:
    """Create a new user.

    Args:
        username: Unique username.
        email: Unique email (stored lower-cased).
        password_hash: Bcrypt hash, or None for a social-only account.
        nickname: Optional display nickname.
        avatar_url: Optional avatar reference.
        social_only: True for accounts created through OAuth.

    Returns:
        The created user record (without password_hash).

    Raises:
        UserConflictError: If the username or email is already taken.
        StorageError: If the insert fails.
    """
    if is_taken(username, email):
        raise UserConflictError("Username or email already taken")

    with get_db_session() as session:
        user = UserModel(
            username=username,
            email=_normalize_email(email),
            password_hash=password_hash,
            nickname=nickname,
            avatar_url=avatar_url,
            social_only=social_only,
        )
        session.add(user)
        session.flush()
        return user.to_dict()


def get_user_by_username(username: str) -> dict[str, Any] | None:
    """Look up a user by username.

    Returns:
        The full user record (including password_hash), or None if not found.
    """
    with get_db_session() as session:
        user = session.query(UserModel).filter(UserModel.username == username).first()
        if not user:
            return None
        return user.to_dict(include_password=True)


def get_user_by_email(email: str) -> dict[str, Any] | None:
    """Look up a user by email.

    Returns:
        The full user record (including password_hash), or None if not found.
    """
    with get_db_session() as session:
        user = session.query(UserModel).filter(UserModel.email == _normalize_email(email)).first()
        if not user:
            return None
        return user.to_dict(include_password=True)


def get_user_by_id(user_id: int) -> dict[str, Any] | None:
    """Look up a user by ID.

    Returns:
        The full user record (including password_hash), or None if not found.
    """
    with get_db_session() as session:
        user = session.get(UserModel, user_id)
        if not user:
            return None
        return user.to_dict(include_password=True)


def get_user_profile(user_id: int) -> dict[str, Any] | None:
    """Get a public profile: the user record plus the user's threads, newest first."""
    with get_db_session() as session:
        user = session.get(UserModel, user_id)
        if not user:
            return None
        threads = (
            session.query(ThreadModel)
            .filter(ThreadModel.user_id == user_id)
            .order_by(ThreadModel.created_at.desc(), ThreadModel.id.desc())
            .all()
        )
        profile = user.to_dict()
        profile["threads"] = [t.to_dict() for t in threads]
        return profile


def update_user(user_id: int, changes: Any) -> dict[str, Any] | None:
    """Apply a profile change-set.

    Args:
        user_id: The user to update.
        changes: Optional-field change-set (username, email, nickname,
            location, avatar_url).

    Returns:
        The updated user record, or None if the user does not exist.

    Raises:
        UserConflictError: If the new username or email belongs to another user.
        StorageError: If the update fails.
    """
    fields = collect_changes(changes)
    if "email" in fields:
        fields["email"] = _normalize_email(fields["email"])
    if is_taken(fields.get("username"), fields.get("email"), exclude_user_id=user_id):
        raise UserConflictError("Username or email already taken")

    with get_db_session() as session:
        user = session.get(UserModel, user_id)
        if not user:
            return None
        apply_changes(user, fields, immutable=_IMMUTABLE_FIELDS)
        session.flush()
        return user.to_dict()


def set_password_hash(user_id: int, password_hash: str) -> None:
    """Replace a user's password hash.

    Raises:
        StorageError: If the update fails.
    """
    with get_db_session() as session:
        user = session.get(UserModel, user_id)
        if user:
            apply_changes(user, {"password_hash": password_hash})
