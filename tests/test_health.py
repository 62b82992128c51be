"""Tests for the /health endpoint."""

from fastapi.testclient import TestClient

from app import __version__
from app.main import app

client = TestClient(app)


def test_health_endpoint():
    """Test that /health returns 200 with correct structure."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "version": __version__}


def test_health_needs_no_vision_config():
    """Health stays available when the vision service is not configured."""
    response = client.get("/health")
    assert response.status_code == 200
    assert "x-request-id" in response.headers
