"""Pytest configuration for backend tests.

Each test gets its own app over the temporary config from the root conftest;
`store` is overridden to be the app's own store.
"""

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from riffstream.core.config import Config
from web.backend.main import create_app


@pytest.fixture
def client(config: Config):
    app = create_app(config, configure_logging=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store(client):
    return client.app.state.store


@pytest.fixture
def tracker(client):
    return client.app.state.play_tracker


@pytest.fixture
def auth(config: Config):
    """Build an Authorization header for a user id."""

    def _auth(user_id: str = "artist-1") -> dict[str, str]:
        token = jwt.encode({"userId": user_id}, config.auth.jwt_secret, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _auth


@pytest.fixture
def wait_for_plays(client):
    """Block until play counts already dispatched by the app are written."""

    def _wait() -> None:
        client.app.state.play_executor.submit(lambda: None).result(timeout=5)

    return _wait
