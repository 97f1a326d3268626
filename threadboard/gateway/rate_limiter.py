"""Request rate limiting via Redis with graceful fallback.

Content creation and likes are limited per user; signup and login are
limited per client IP. When Redis is not available, all requests are
allowed.
"""

import logging
import time

import redis
from fastapi import HTTPException, Request, status

from threadboard.gateway.config import get_gateway_config
from threadboard.redis_connection import get_redis_client

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW = 60  # seconds


def check_rate_limit(key: str, limit: int) -> bool:
    """Check and increment a fixed-window rate limit counter.

    Args:
        key: The rate limit key (e.g., "ratelimit:api:42").
        limit: Maximum requests allowed per window.

    Returns:
        True if the request is allowed, False if rate-limited.
        When Redis is unavailable, always returns True (fail open).
    """
    client = get_redis_client()
    if client is None:
        return True

    window_key = f"{key}:{int(time.time()) // RATE_LIMIT_WINDOW}"
    try:
        pipe = client.pipeline()
        pipe.incr(window_key)
        pipe.expire(window_key, RATE_LIMIT_WINDOW * 2)
        results = pipe.execute()
        count = results[0]
        return count <= limit
    except redis.RedisError as e:
        logger.warning(f"Rate limiter error: {e}")
        return True


def check_user_api_rate(user_id: int) -> None:
    """Check the content/like rate limit for a user. Raises 429 if exceeded."""
    if not check_rate_limit(f"ratelimit:api:{user_id}", get_gateway_config().api_rate_limit):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="API rate limit exceeded. Please try again later.",
        )


def check_auth_rate(request: Request) -> None:
    """Check the signup/login rate limit by IP address. Raises 429 if exceeded."""
    ip = request.client.host if request.client else "unknown"
    if not check_rate_limit(f"ratelimit:auth:{ip}", get_gateway_config().auth_rate_limit):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many authentication attempts. Please try again later.",
        )
