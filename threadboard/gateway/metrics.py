"""Prometheus metrics instrumentation for the gateway.

Provides:
- Auto-instrumentation of all HTTP endpoints via prometheus-fastapi-instrumentator
- Domain counters for threads, comments, likes and logins
"""

import logging

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

logger = logging.getLogger(__name__)


def setup_metrics(app: FastAPI) -> None:
    """Instrument the FastAPI app and expose ``/metrics``.

    Args:
        app: The FastAPI application instance to instrument.
    """
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=[
            "/health",
            "/metrics",
            "/docs",
            "/redoc",
            "/openapi.json",
        ],
    )
    instrumentator.instrument(app).expose(
        app,
        endpoint="/metrics",
        include_in_schema=False,
    )
    logger.info("Prometheus metrics enabled at /metrics")


# ---------------------------------------------------------------------------
# Application-level counters, importable from any router
# ---------------------------------------------------------------------------

# ── Content ────────────────────────────────────────────────────────────
threads_created_total = Counter(
    "threads_created_total",
    "Total number of threads created",
)
comments_created_total = Counter(
    "comments_created_total",
    "Total number of comments created",
)

# ── Likes ──────────────────────────────────────────────────────────────
likes_toggled_total = Counter(
    "likes_toggled_total",
    "Like toggle requests by outcome",
    ["outcome"],  # "added" | "already_absent" | "already_liked" | "removed"
)

# ── Authentication ─────────────────────────────────────────────────────
logins_total = Counter(
    "logins_total",
    "Login attempts",
    ["method", "status"],  # method: "password" | "github"; status: "success" | "failure"
)
