"""Pydantic schemas for authentication and the session principal."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from threadboard.gateway.auth.password import MAX_PASSWORD_BYTES, is_password_too_long


def _check_password_length(value: str) -> str:
    if is_password_too_long(value):
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return value


class Principal(BaseModel):
    """The authenticated user attached to a session.

    Built once from a single user record when the session is created, so
    ``id`` is always an ``int`` and ownership checks compare like types.
    """

    id: int
    username: str
    email: str
    nickname: str | None = None
    avatar_url: str | None = None
    social_only: bool = False

    @classmethod
    def from_user(cls, user: dict[str, Any]) -> Principal:
        """Build a principal from a user record returned by the user store."""
        return cls(
            id=int(user["id"]),
            username=user["username"],
            email=user["email"],
            nickname=user.get("nickname"),
            avatar_url=user.get("avatar_url"),
            social_only=bool(user.get("social_only")),
        )


class SignupRequest(BaseModel):
    """Request body for local signup."""

    username: str = Field(..., min_length=1, max_length=256)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    password2: str = Field(..., max_length=128)

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        return _check_password_length(value)


class LoginRequest(BaseModel):
    """Request body for local login."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        return _check_password_length(value)


class ChangePasswordRequest(BaseModel):
    """Request body for changing the local password."""

    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=128)
    new_password2: str = Field(..., max_length=128)

    @field_validator("old_password", "new_password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        return _check_password_length(value)


class UserResponse(BaseModel):
    """Public user information returned in API responses."""

    id: int
    username: str
    email: str
    nickname: str | None = None
    location: str | None = None
    avatar_url: str | None = None
    social_only: bool = False
    created_at: str | None = None


class AuthResponse(BaseModel):
    """Response for signup and login."""

    message: str
    user: UserResponse
