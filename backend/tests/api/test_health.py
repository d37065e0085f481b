"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

from shared.store import StoreUnavailableError


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        """Health endpoint should return 200 with status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"

    def test_health_response_structure(self, client):
        """Health response should have correct structure."""
        response = client.get("/api/health")
        assert set(response.json().keys()) == {"status", "version"}

    def test_readiness_check(self, client):
        """Readiness endpoint should report a connected store."""
        response = client.get("/api/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "store": "connected"}

    def test_readiness_store_down(self, client, container):
        """Readiness should return 503 when the store cannot be reached."""
        with patch.object(
            container.store, "get", AsyncMock(side_effect=StoreUnavailableError("connection refused"))
        ):
            response = client.get("/api/ready")

        assert response.status_code == 503
        assert response.json() == {"status": "unavailable", "store": "unreachable"}
