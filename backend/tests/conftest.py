"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
Every test gets a fresh in-memory store, credential provider and outbox
dispatcher, wired into the API's service container.
"""

import os

# Must be set before settings are first loaded
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-0123456789")
os.environ.setdefault("BIN_API_KEYS", '["bin-key-1"]')
os.environ.setdefault("ADMIN_EMAILS", '["admin@example.com"]')

from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import parse_qs, urlparse

import jwt  # PyJWT
import pytest

from api.dependencies import ServiceContainer, reset_container, set_container
from modules.identity.models import User, UserStatus, user_key
from providers.credentials import InMemoryCredentialProvider
from providers.notifications import OutboxNotificationDispatcher
from shared.config import get_settings
from shared.models import Principal
from shared.store import InMemoryStore, reset_store

TEST_BIN_KEY = "bin-key-1"
TEST_PASSWORD = "correct-horse"


class FakeClock:
    """Controllable clock. Starts at the real current time so JWTs stay valid."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
) -> str:
    """
    Create a session JWT signed with the test secret.

    Args:
        user_id: User ID to include in the token
        email: Email to include in the token
        expired: If True, creates an expired token

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, get_settings().jwt_secret, algorithm="HS256")


def make_user(
    user_id: str = "user-1",
    email: Optional[str] = None,
    points: int = 0,
    is_admin: bool = False,
    is_vendor: bool = False,
    phone: Optional[str] = None,
    token: Optional[str] = None,
) -> User:
    now = datetime.now(timezone.utc)
    return User(
        id=user_id,
        name=user_id.title(),
        email=email or f"{user_id}@example.com",
        phone=phone,
        token=token,
        created_at=now,
        joined_at=now,
        verified=True,
        points=points,
        is_admin=is_admin,
        is_vendor=is_vendor,
        status=UserStatus.ACTIVE,
    )


async def seed_user(store: InMemoryStore, user: User) -> User:
    """Write a User record directly, bypassing registration."""

    def apply(ctx):
        ctx.set(user_key(user.id), user.model_dump(mode="json"))

    await store.run_transaction([user_key(user.id)], apply)
    return user


def principal_for(user: User) -> Principal:
    return Principal(
        id=user.id,
        email=user.email,
        email_verified=user.verified,
        is_admin=user.is_admin,
        is_vendor=user.is_vendor,
    )


def link_token(dispatcher: OutboxNotificationDispatcher, email: str) -> str:
    """Token from the most recent verification link emailed to an address."""
    links = [
        d.payload["link"]
        for d in dispatcher.sent_to(email)
        if d.payload.get("template") == "email_verification"
    ]
    assert links, f"No verification email sent to {email}"
    return parse_qs(urlparse(links[-1]).query)["token"][0]


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the container and store singletons before and after each test."""
    reset_container()
    reset_store()
    yield
    reset_container()
    reset_store()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def dispatcher(clock) -> OutboxNotificationDispatcher:
    return OutboxNotificationDispatcher(clock=clock)


@pytest.fixture
def credentials(dispatcher, clock) -> InMemoryCredentialProvider:
    # Minimum bcrypt cost keeps the suite fast
    return InMemoryCredentialProvider(dispatcher=dispatcher, clock=clock, bcrypt_rounds=4)


@pytest.fixture
def container(store, credentials, dispatcher, clock) -> ServiceContainer:
    """Service container wired to the test collaborators and installed for the API."""
    container = ServiceContainer(
        store=store,
        credentials=credentials,
        dispatcher=dispatcher,
        clock=clock,
    )
    set_container(container)
    return container


@pytest.fixture
def admin() -> Principal:
    return Principal(id="admin-1", email="admin@example.com", email_verified=True, is_admin=True)


@pytest.fixture
def bin_headers() -> dict[str, str]:
    return {"X-Bin-Key": TEST_BIN_KEY}


def auth_headers_for(user_id: str, email: str = "test@example.com") -> dict[str, str]:
    """Authorization headers with a valid token for a user."""
    return {"Authorization": f"Bearer {create_test_token(user_id=user_id, email=email)}"}
