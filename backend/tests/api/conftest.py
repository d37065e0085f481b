"""Fixtures for API tests."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from api import app
from modules.identity.models import User
from shared.store import InMemoryStore
from tests.conftest import TEST_PASSWORD, seed_user


@pytest.fixture
def client(container) -> TestClient:
    """Test client served by the test container."""
    return TestClient(app)


def register(client: TestClient, bin_headers: dict, email: str = "dana@example.com", token: str = "a1b2c3d4"):
    """Scan a token at a bin and register an account for it."""
    client.post("/api/rfid/scans", json={"token": token}, headers=bin_headers)
    return client.post(
        "/api/registrations",
        json={"name": "Dana", "email": email, "password": TEST_PASSWORD, "token": token},
    )


def sign_in(client: TestClient, email: str = "dana@example.com") -> dict[str, str]:
    response = client.post("/api/auth/signin", json={"email": email, "password": TEST_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def seed(store: InMemoryStore, *users: User) -> None:
    """Write User records from a synchronous test."""
    for user in users:
        asyncio.run(seed_user(store, user))
