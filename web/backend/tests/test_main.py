"""Tests for FastAPI application."""

from fastapi.testclient import TestClient

from riffstream.core.config import Config
from web.backend.main import create_app


def test_health_endpoint(client):
    """Test health check endpoint returns 200."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_cors_headers(client):
    """Test CORS headers are present."""
    response = client.options(
        "/health",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_range_headers_exposed(client, make_track):
    """Test that browsers may read the range headers cross-origin."""
    make_track("t1")

    response = client.get("/api/stream/t1", headers={"Origin": "http://localhost:5173"})

    exposed = response.headers["access-control-expose-headers"].lower()
    for header in ("content-range", "accept-ranges", "content-length", "x-content-duration"):
        assert header in exposed


def test_errors_use_error_key(client):
    """Test that HTTP errors are returned as {"error": message}."""
    response = client.get("/api/stream/missing")
    assert response.status_code == 404
    assert response.json() == {"error": "Track not found"}


def test_startup_creates_storage(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    config = Config()
    config.storage.upload_dir = str(tmp_path / "uploads")
    config.storage.database_path = str(tmp_path / "db" / "riffstream.db")

    with TestClient(create_app(config, configure_logging=False)):
        pass

    assert (tmp_path / "uploads" / "audio").is_dir()
    assert (tmp_path / "db" / "riffstream.db").exists()
