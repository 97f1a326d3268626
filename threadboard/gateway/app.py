import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from threadboard.db.engine import check_db_connection, init_db
from threadboard.gateway.auth import github
from threadboard.gateway.auth.routes import router as auth_router
from threadboard.gateway.config import get_gateway_config
from threadboard.gateway.errors import install_error_handlers
from threadboard.gateway.file_storage import LOCAL_URL_PREFIX
from threadboard.gateway.metrics import setup_metrics
from threadboard.gateway.routers import comments, threads, users
from threadboard.logging_config import configure_logging
from threadboard.redis_connection import check_redis_health, is_redis_available
from threadboard.stores.session_store import purge_expired_sessions

# Configure logging
configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    config = get_gateway_config()
    logger.info(f"Starting threadboard gateway on {config.host}:{config.port} (mode={config.mode})")

    # Tables are created here for local runs; production schemas come from Alembic
    init_db()
    purge_expired_sessions()

    if config.github.is_configured:
        logger.info("GitHub login enabled")
    else:
        logger.info("GitHub login disabled (GITHUB_CLIENT_ID/GITHUB_CLIENT_SECRET not set)")

    yield
    logger.info("Shutting down threadboard gateway")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    config = get_gateway_config()

    app = FastAPI(
        title="threadboard API",
        description="""
## threadboard

A small social-threads backend: local and GitHub login, threads with an
optional photo, comments, likes and profiles.

Authentication uses an httpOnly session cookie set by `/login` or the
GitHub callback.
        """,
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {
                "name": "auth",
                "description": "Signup, login, logout and GitHub OAuth",
            },
            {
                "name": "threads",
                "description": "Thread listing, search, CRUD and likes",
            },
            {
                "name": "comments",
                "description": "Comments on a thread",
            },
            {
                "name": "users",
                "description": "Profiles, profile editing and password changes",
            },
            {
                "name": "health",
                "description": "Health check and system status endpoints",
            },
        ],
    )

    install_error_handlers(app)

    # Include routers
    app.include_router(auth_router)
    app.include_router(github.router)

    # Root listing at / and /search; item routes at /threads
    app.include_router(threads.router_root)
    app.include_router(threads.router)
    app.include_router(comments.router)
    app.include_router(users.router)

    # Locally stored uploads; in OPS mode files are served by object storage
    if not config.uses_object_storage:
        upload_dir = Path(config.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        app.mount(LOCAL_URL_PREFIX, StaticFiles(directory=upload_dir), name="uploads")

    # ── Prometheus metrics instrumentation ──────────────────────────────────
    setup_metrics(app)

    # ── Health check ─────────────────────────────────────────────────────────

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """Health check endpoint.

        Returns service health status including gateway, database and
        (when configured) Redis connectivity.

        Returns:
            Service health status information with component checks.
        """
        checks: dict[str, str] = {"gateway": "healthy"}
        checks["database"] = check_db_connection()

        if is_redis_available():
            checks["redis"] = check_redis_health()

        all_healthy = all(v == "healthy" for v in checks.values())
        status = "healthy" if all_healthy else "degraded"

        return {"status": status, "service": "threadboard-gateway", "checks": checks}

    return app


# Create app instance for uvicorn
app = create_app()
