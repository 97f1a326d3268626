"""Tests for the health check endpoint."""

from unittest.mock import patch


class TestHealthCheck:
    """Tests for the /health endpoint."""

    def test_basic_health_check(self, client):
        """Health check returns 200 with expected structure."""
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["service"] == "threadboard-gateway"
        assert body["status"] == "healthy"
        assert body["checks"] == {"gateway": "healthy", "database": "healthy"}

    def test_redis_check_included_when_available(self, client):
        with (
            patch("threadboard.gateway.app.is_redis_available", return_value=True),
            patch("threadboard.gateway.app.check_redis_health", return_value="healthy"),
        ):
            body = client.get("/health").json()
        assert body["checks"]["redis"] == "healthy"
        assert body["status"] == "healthy"

    def test_redis_unhealthy_degraded(self, client):
        with (
            patch("threadboard.gateway.app.is_redis_available", return_value=True),
            patch("threadboard.gateway.app.check_redis_health", return_value="unhealthy: refused"),
        ):
            body = client.get("/health").json()
        assert body["status"] == "degraded"
        assert "unhealthy" in body["checks"]["redis"]

    def test_database_unreachable_degraded(self, client):
        """When the database is unreachable, status is degraded."""
        with patch("threadboard.gateway.app.check_db_connection", return_value="unhealthy: no such host"):
            body = client.get("/health").json()
        assert body["status"] == "degraded"
        assert body["checks"]["database"].startswith("unhealthy")
