"""Password hashing utilities using bcrypt."""

from __future__ import annotations

import bcrypt

# bcrypt only reads the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


def is_password_too_long(password: str) -> bool:
    """Check whether a password exceeds what bcrypt can hash."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: The plaintext password to hash.

    Returns:
        The bcrypt hash as a string.

    Raises:
        ValueError: If the password is longer than 72 bytes in UTF-8.
    """
    if is_password_too_long(password):
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str | None) -> bool:
    """Verify a password against a bcrypt hash.

    Args:
        password: The plaintext password to verify.
        hashed: The stored bcrypt hash. Social-only accounts have none.

    Returns:
        True if the password matches, False otherwise. Always False without
        a stored hash or for a password too long to have been hashed.
    """
    if not hashed or is_password_too_long(password):
        return False
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
