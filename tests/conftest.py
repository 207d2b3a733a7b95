"""
pytest configuration and fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from user_service import create_app
from user_store import UserStore


@pytest.fixture
def store() -> UserStore:
    """Fresh, empty store per test."""
    return UserStore()


@pytest.fixture
def client(store: UserStore) -> TestClient:
    """TestClient bound to an app serving ``store``."""
    return TestClient(create_app(store))


@pytest.fixture
def john(client: TestClient) -> dict:
    """A user created through the API."""
    res = client.post("/api/users", json={"name": "John Doe", "email": "john@example.com"})
    assert res.status_code == 201
    return res.json()["user"]
