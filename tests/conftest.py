"""
tests/conftest.py -- Shared fixtures for unit and integration tests.

This module provides:
  - Unit fixtures: an in-memory UserStore and the services built around it,
    with bcrypt at its minimum cost so hashing does not dominate runtime.
  - api_client: TestClient over the real FastAPI app with a patched lifespan,
    an isolated shared-memory store, and a pre-created super_admin.

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

Environment must be set before any core/auth/api import so get_settings()
generates dev secrets (DEBUG) and picks up the cheap hashing cost.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any project import -- get_settings() is cached.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("REFRESH_TOKEN_HASH_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app, init_state
from auth.admin import AdminAccountManager
from auth.authenticator import Authenticator
from auth.hasher import PasswordHasher
from auth.models import Role
from auth.sessions import SessionManager
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings

ACCESS_SECRET = "a" * 40
REFRESH_SECRET = "r" * 40

SUPER_EMAIL = "root@x.com"
SUPER_PASSWORD = "Root1!pass"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def file_store(tmp_path) -> Generator[UserStore, None, None]:
    """A store on a temporary file, for tests that hit it from several threads.

    Plain :memory: gives every pooled thread its own empty database.
    """
    s = UserStore(f"sqlite:///{tmp_path / 'users.db'}")
    yield s
    s.close()


@pytest.fixture(scope="session")
def passwords() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture(scope="session")
def refresh_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4, prehash=True)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(ACCESS_SECRET, REFRESH_SECRET)


@pytest.fixture
def authenticator(store: UserStore, passwords: PasswordHasher) -> Authenticator:
    return Authenticator(store, passwords)


@pytest.fixture
def sessions(store, issuer, passwords, refresh_hasher) -> SessionManager:
    return SessionManager(store, issuer, passwords, refresh_hasher)


@pytest.fixture
def admin_accounts(authenticator: Authenticator, sessions: SessionManager) -> AdminAccountManager:
    return AdminAccountManager(authenticator, sessions)


@pytest.fixture
def make_user(store: UserStore, passwords: PasswordHasher):
    """Factory: create a principal with a known password and return it (with secrets)."""

    def _make(username: str, email: str, password: str = "Valid1!pass", role: Role = Role.USER):
        return store.create(username, email, passwords.hash(password), role)

    return _make


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    store: UserStore
    super_admin_id: int

    def login(self, email: str, password: str, admin: bool = False) -> dict:
        path = "/api/v1/admin/auth/login" if admin else "/api/v1/auth/login"
        resp = self.client.post(path, json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()

    def super_admin_headers(self) -> dict:
        token = self.login(SUPER_EMAIL, SUPER_PASSWORD, admin=True)["access_token"]
        return {"Authorization": f"Bearer {token}"}


def _patch_lifespan(user_store: UserStore):
    """Return a lifespan that wires the test store instead of opening the real DB."""

    @asynccontextmanager
    async def test_lifespan(app):
        init_state(app, user_store, get_settings())
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for integration tests, one isolated DB per test module.

    A super_admin (root@x.com / Root1!pass) exists before the client starts.
    """
    db_name = request.module.__name__.replace(".", "_")
    user_store = UserStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    hasher = PasswordHasher(rounds=get_settings().password_hash_rounds)
    root = user_store.create("root", SUPER_EMAIL, hasher.hash(SUPER_PASSWORD), Role.SUPER_ADMIN)

    original_lifespan = app.router.lifespan_context
    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client=client, store=user_store, super_admin_id=root.id)

    app.router.lifespan_context = original_lifespan
    user_store.close()
