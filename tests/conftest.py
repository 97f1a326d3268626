"""Shared test fixtures for the test suite."""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

TEST_PASSWORD = "SecurePass1"


@pytest.fixture(autouse=True)
def gateway_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Isolate configuration, secrets, uploads and Redis for every test.

    Points UPLOAD_DIR and the session secret file at a temporary directory,
    fixes the session signing key, removes REDIS_URL and drops every cached
    config/connection before and after the test.
    """
    from threadboard.gateway.config import reset_gateway_config
    from threadboard.redis_connection import reset_redis_connection

    store_dir = tmp_path / ".threadboard"
    store_dir.mkdir()

    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "files"))
    monkeypatch.setenv("SESSION_SECRET_KEY", "test-session-secret-key-for-unit-tests-only")
    for name in ("REDIS_URL", "REQUIRE_ENV_SECRETS", "MODE", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)

    patches = [
        patch("threadboard.gateway.auth.session._STORE_DIR", store_dir),
        patch("threadboard.gateway.auth.session._SECRET_FILE", store_dir / "session-secret.key"),
    ]
    for p in patches:
        p.start()

    reset_gateway_config()
    reset_redis_connection()

    yield store_dir

    for p in patches:
        p.stop()
    reset_gateway_config()
    reset_redis_connection()


@pytest.fixture()
def sample_user_data() -> dict[str, str]:
    """Provide sample signup data."""
    return {
        "username": "alice",
        "email": "alice@example.com",
        "password": TEST_PASSWORD,
        "password2": TEST_PASSWORD,
    }


# ---------------------------------------------------------------------------
# Database test fixtures (SQLite in-memory for fast, isolated testing)
# ---------------------------------------------------------------------------
@pytest.fixture()
def db_engine():
    """Create a SQLite in-memory engine for testing.

    StaticPool keeps a single connection so the TestClient's worker thread
    sees the same in-memory database as the test.
    """
    from threadboard.db.engine import Base

    # Import models to register them with Base
    import threadboard.db.models  # noqa: F401

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    # Enable foreign key support (and so cascades) in SQLite
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a raw database session for inspecting rows directly."""
    factory = sessionmaker(bind=db_engine, expire_on_commit=False)
    session = factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture()
def db_enabled(db_engine) -> Generator[None, None, None]:
    """Point the engine module at the test SQLite engine.

    This patches ``_engine`` and ``_session_factory`` so every store call
    made through ``get_db_session()`` uses the in-memory database.
    """
    import threadboard.db.engine as engine_module

    factory = sessionmaker(bind=db_engine, expire_on_commit=False)

    patches = [
        patch.object(engine_module, "_engine", db_engine),
        patch.object(engine_module, "_session_factory", factory),
    ]
    for p in patches:
        p.start()

    yield

    for p in patches:
        p.stop()


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def app(db_enabled):
    """Build a gateway app bound to the test database.

    Metrics setup is patched out so repeated app construction does not
    re-register Prometheus collectors.
    """
    with patch("threadboard.gateway.app.setup_metrics"):
        from threadboard.gateway.app import create_app

        yield create_app()


@pytest.fixture()
def make_client(app) -> Callable[[], TestClient]:
    """Factory for independent clients, each with its own cookie jar."""

    def _make() -> TestClient:
        return TestClient(app, follow_redirects=False)

    return _make


@pytest.fixture()
def client(make_client) -> TestClient:
    """An anonymous client."""
    return make_client()


def signup(client: TestClient, username: str, email: str | None = None, password: str = TEST_PASSWORD):
    """Register a local account through the API."""
    return client.post(
        "/join",
        json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
            "password2": password,
        },
    )


def login(client: TestClient, username: str, password: str = TEST_PASSWORD):
    """Log in through the API; the session cookie lands in the client's jar."""
    return client.post("/login", json={"username": username, "password": password})


@pytest.fixture()
def logged_in(make_client) -> Callable[[str], tuple[TestClient, dict[str, Any]]]:
    """Factory returning ``(client, user)`` for a freshly registered, logged-in user."""

    def _logged_in(username: str) -> tuple[TestClient, dict[str, Any]]:
        c = make_client()
        response = signup(c, username)
        assert response.status_code == 201, response.text
        response = login(c, username)
        assert response.status_code == 200, response.text
        return c, response.json()["user"]

    return _logged_in
