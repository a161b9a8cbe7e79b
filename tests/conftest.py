"""
tests/conftest.py -- Shared test fixtures for ElectriFind tests.

This module provides:
  - store / tokens / service: unit-level objects over an in-memory SQLite DB
  - make_user: helper fixture that registers a user through the store
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment must be set before any api/ or core/ import:
  DEBUG            -- get_settings() auto-generates SECRET_KEY instead of raising
  BCRYPT_ROUNDS    -- minimum cost so the suite does not spend seconds hashing
  LOGIN_RATE_LIMIT -- high enough that the suite never trips the limiter by accident
  API_RATE_LIMIT   -- same, for the application limit shared by every /api route
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any api/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("API_RATE_LIMIT", "10000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import NewUser, Role, User
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings

TEST_SECRET = "test-signing-key-0123456789abcdef0123456789"
TEST_PASSWORD = "Abcd1234"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """Fresh in-memory UserStore per test."""
    s = UserStore("sqlite:///:memory:", bcrypt_rounds=4)
    yield s
    s.close()


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET, expire_seconds=3600)


@pytest.fixture
def service(store: UserStore, tokens: TokenService) -> AuthService:
    return AuthService(store, tokens)


@pytest.fixture
def make_user(store: UserStore):
    """Return a factory that registers a user directly through the store."""

    def _make(
        phone: str = "03001234567",
        name: str = "Ali Khan",
        password: str = TEST_PASSWORD,
        role: Role = Role.customer,
        email: str | None = None,
    ) -> User:
        return store.create_user(NewUser(name=name, phone=phone, password=password, email=email, role=role))

    return _make


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, tokens: TokenService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so TestClient routes see
    an isolated database rather than the configured one.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.tokens = tokens
        app.state.auth_service = AuthService(user_store, tokens)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers and the real guard, but an isolated store.
    An admin account (phone 03009999999) is created before the client starts.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    db_url = f"sqlite:///file:test_auth_{suffix}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url, bcrypt_rounds=4)
    tokens = TokenService.from_settings(get_settings())

    admin = user_store.create_user(
        NewUser(name="Site Admin", phone="03009999999", password="Admin1234", role=Role.admin)
    )
    token = tokens.issue(admin.id, admin.role)

    app.router.lifespan_context = _patch_lifespan(user_store, tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, admin.id

    user_store.close()
