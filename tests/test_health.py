"""Tests for health check endpoints."""

from fastapi.testclient import TestClient


def test_health_check(client: TestClient) -> None:
    """Test health endpoint returns healthy status."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "catalog-service"
    assert "version" in data


def test_readiness_check(client: TestClient) -> None:
    """Test readiness endpoint reaches the database."""
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"
