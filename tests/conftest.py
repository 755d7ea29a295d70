"""
tests/conftest.py -- Shared test fixtures for NoteSafe.

This module provides:
  - hasher / tokens / auth_service: unit-level collaborators with cheap
    bcrypt rounds and a fixed signing secret
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient over the real FastAPI app with an isolated DB
  - signup: registers + logs in a user through the API, returns (id, token)
  - token_factory: mints tokens the app accepts, at any issue instant

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the API fixtures because TestClient runs sync route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process. Each test module gets its own
name, so ids start at 1 in every module.

The DEBUG env var is set before any app import so that anything calling
get_settings() auto-generates SECRET_KEY instead of raising ValueError.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# Set DEBUG before any core import so get_settings() can auto-generate
# SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.identity import IdentityResolver
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import InMemoryUserStore, SqlUserStore
from auth.tokens import TokenService
from core.db import create_db_engine
from notes.store import SqlNoteStore

TEST_SECRET_KEY = "test-only-signing-key-0123456789abcdef0123456789"
# bcrypt's minimum work factor. Production uses Settings.bcrypt_rounds (12).
TEST_BCRYPT_ROUNDS = 4

# ---------------------------------------------------------------------------
# Unit-level collaborators
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret_key=TEST_SECRET_KEY, ttl_seconds=900, issuer="notesafe")


@pytest.fixture
def auth_service(hasher: PasswordHasher, tokens: TokenService) -> AuthService:
    """AuthService over an empty in-memory credential store."""
    return AuthService(InMemoryUserStore(), hasher, tokens)


# ---------------------------------------------------------------------------
# API integration
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine):
    """Return an async context manager that replaces the real lifespan.

    Mirrors api.main.lifespan but with a caller-supplied engine, the fixed
    test secret, and minimum bcrypt rounds.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        tokens = TokenService(secret_key=TEST_SECRET_KEY, ttl_seconds=900, issuer="notesafe")
        app.state.engine = engine
        app.state.user_store = SqlUserStore(engine)
        app.state.note_store = SqlNoteStore(engine)
        app.state.auth_service = AuthService(
            app.state.user_store,
            PasswordHasher(rounds=TEST_BCRYPT_ROUNDS),
            tokens,
        )
        app.state.identity_resolver = IdentityResolver(tokens)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app, backed by a per-module in-memory DB.

    The engine is disposed after the module finishes, which drops the named
    in-memory database with it.
    """
    db_name = request.module.__name__.rsplit(".", 1)[-1]
    engine = create_db_engine(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")

    app.router.lifespan_context = _patch_lifespan(engine)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    engine.dispose()


@pytest.fixture
def signup(api_client: TestClient) -> Callable[..., tuple[int, str]]:
    """Return a helper that registers and logs in a user over HTTP.

    Usage:
        user_id, token = signup("a@x.com", "pw1")
    """

    def _signup(email: str, password: str = "correct-horse-battery") -> tuple[int, str]:
        reg = api_client.post("/api/v1/auth/register", json={"email": email, "password": password})
        assert reg.status_code == 201, f"register failed: {reg.status_code} {reg.text}"
        login = api_client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert login.status_code == 200, f"login failed: {login.status_code} {login.text}"
        return reg.json()["id"], login.json()["token"]

    return _signup



@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Return a helper that mints tokens with the app's test secret.

    issued_at pins the token's iat; omit it for a token issued now.
    """

    def _mint(user_id: int, issued_at: float | None = None) -> str:
        clock = time.time if issued_at is None else (lambda: issued_at)
        return TokenService(secret_key=TEST_SECRET_KEY, ttl_seconds=900, clock=clock).issue(user_id)

    return _mint
