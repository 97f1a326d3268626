"""Optional Redis client for the rate limiter and the health check.

Redis is not required to run threadboard. The first caller probes
``REDIS_URL`` once per process; if it is missing or the server does not
answer, the client stays ``None`` and rate limits are simply not enforced.
"""

import logging
import os

import redis

logger = logging.getLogger(__name__)

# Seconds to wait for the first connection before giving up on Redis
CONNECT_TIMEOUT = 2

_redis_client: redis.Redis | None = None
_redis_checked = False


def get_redis_url() -> str | None:
    return os.environ.get("REDIS_URL")


def is_redis_available() -> bool:
    """Report whether a Redis client is in use, probing on first call.

    The probe outcome sticks until reset_redis_connection(), so a server
    that comes up later is only picked up after a restart.
    """
    global _redis_checked, _redis_client

    if _redis_checked:
        return _redis_client is not None

    _redis_checked = True
    url = get_redis_url()
    if not url:
        logger.info("REDIS_URL not set; requests will not be rate limited")
        return False

    try:
        client = redis.from_url(url, socket_connect_timeout=CONNECT_TIMEOUT)
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis at {url} did not answer ({e}); requests will not be rate limited")
        _redis_client = None
        return False

    _redis_client = client
    logger.info(f"Rate limiting backed by Redis at {url}")
    return True


def get_redis_client() -> redis.Redis | None:
    """Return the shared client, or None when Redis is not in use."""
    if not _redis_checked:
        is_redis_available()
    return _redis_client


def check_redis_health() -> str:
    """Ping Redis for /health.

    Returns:
        "healthy", "not configured" when Redis is not in use, or
        "unhealthy: <error>" when the ping fails.
    """
    client = get_redis_client()
    if client is None:
        return "not configured"
    try:
        client.ping()
    except redis.RedisError as e:
        logger.error(f"Redis ping failed: {e}")
        return f"unhealthy: {e}"
    return "healthy"


def reset_redis_connection() -> None:
    """Forget the probe result so the next call probes again."""
    global _redis_client, _redis_checked
    _redis_client = None
    _redis_checked = False
