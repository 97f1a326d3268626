"""Authentication module for the gateway."""

from threadboard.gateway.auth.middleware import get_current_user, get_optional_user, require_anonymous
from threadboard.gateway.auth.models import Principal

__all__ = ["Principal", "get_current_user", "get_optional_user", "require_anonymous"]
