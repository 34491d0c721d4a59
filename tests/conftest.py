"""
tests/conftest.py -- Shared test fixtures for DevDash.

This module provides:
  - user_store / session_store / authenticator: in-memory unit-test fixtures
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - make_client: factory for TestClients backed by isolated shared-memory DBs
  - client: the default TestClient (fresh cookie jar and DB per test)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for TestClient because it runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Unit fixtures run on one thread, so :memory: is fine there.

TestClient uses base_url http://localhost because TrustedHostMiddleware
rejects the default "testserver" host.

DEBUG and AUTH_RATE_LIMIT must be set before any app import: get_settings()
auto-generates SECRET_KEY in dev mode, and the app reads its settings once
at import time. The auth rate limit is re-read from get_settings() per
request, so a test can lower it by clearing the settings cache.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: must run before any auth/core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("AUTH_RATE_LIMIT", "1000/minute")

import pytest
from fastapi import APIRouter, Depends
from fastapi.testclient import TestClient

from api.main import app
from auth.authenticator import Authenticator
from auth.dependencies import get_current_user
from auth.models import SafeUser
from auth.sessions import SessionStore
from auth.store import UserStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"

# ---------------------------------------------------------------------------
# A protected route standing in for any dashboard feature behind the gate.
# ---------------------------------------------------------------------------

_probe_router = APIRouter()


@_probe_router.get("/api/probe/protected")
def _protected_probe(user: SafeUser = Depends(get_current_user)) -> dict:
    return {"user_id": user.id, "username": user.username}


if not any(getattr(r, "path", None) == "/api/probe/protected" for r in app.routes):
    app.include_router(_probe_router)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def session_store() -> Generator[SessionStore, None, None]:
    store = SessionStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def authenticator(user_store: UserStore, session_store: SessionStore) -> Authenticator:
    return Authenticator(user_store, session_store, TEST_SECRET, session_ttl=3600)


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, session_store: SessionStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown has a real
    asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = app.state.settings
        app.state.user_store = user_store
        app.state.session_store = session_store
        app.state.authenticator = Authenticator(
            user_store,
            session_store,
            settings.secret_key,
            session_ttl=settings.session_ttl_seconds,
        )
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture
def make_client() -> Generator[Callable[..., TestClient], None, None]:
    """Yield a factory building TestClients over fresh isolated databases.

    Every client gets its own named shared-memory DB, so cookie jars and
    user tables never leak between tests.
    """
    opened: list[tuple[TestClient, UserStore, SessionStore]] = []

    def _make(raise_server_exceptions: bool = True) -> TestClient:
        db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
        user_store = UserStore(db_url)
        session_store = SessionStore(db_url)
        app.router.lifespan_context = _patch_lifespan(user_store, session_store)
        client = TestClient(app, base_url="http://localhost", raise_server_exceptions=raise_server_exceptions)
        client.__enter__()
        opened.append((client, user_store, session_store))
        return client

    yield _make

    for client, user_store, session_store in opened:
        client.__exit__(None, None, None)
        session_store.close()
        user_store.close()


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()
