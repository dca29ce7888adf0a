"""
tests/conftest.py -- Shared test fixtures for BlogEngine.

This module provides:
  - db / blog_store / auth_store: isolated in-memory stores for unit tests
  - oauth_client: a mocked authlib client (no network)
  - client: TestClient over the real ASGI app with a patched lifespan
  - editor_token: a session token for a subject on the allow-list

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
TestClient fixture because route handlers and the access-level middleware run
in a thread pool. Plain :memory: DBs are per-connection and would present a
blank schema to each worker thread.

DEBUG must be set before any auth/core import so get_settings() auto-generates
SECRET_KEY in dev mode rather than raising ValueError. The login rate limit is
raised so the suite can hit /login freely.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

# CRITICAL: Set env before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient

from asgi import app
from auth.store import AuthorizationStore
from auth.tokens import issue_session_token
from blog.store import BlogStore
from core.database import Database

EDITOR_SUBJECT = "editor-subject-001"

# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


def _shared_memory_url() -> str:
    return f"sqlite:///file:test_blog_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database(_shared_memory_url())
    database.create_all()
    yield database
    database.close()


@pytest.fixture
def blog_store(db: Database) -> BlogStore:
    return BlogStore(db)


@pytest.fixture
def auth_store(db: Database) -> AuthorizationStore:
    store = AuthorizationStore(db)
    store.grant(EDITOR_SUBJECT, note="Test Editor")
    return store


# ---------------------------------------------------------------------------
# OAuth mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def oauth_client() -> MagicMock:
    """A stand-in for the authlib Starlette client.

    authorize_redirect sends the browser to a fake consent URL;
    authorize_access_token and get are AsyncMocks that tests configure.
    """
    client = MagicMock()
    client.authorize_redirect = AsyncMock(
        return_value=RedirectResponse("https://provider.example/consent?scope=profile", status_code=302)
    )
    client.authorize_access_token = AsyncMock(return_value={"access_token": "provider-token"})
    client.get = AsyncMock()
    return client


@pytest.fixture
def oauth_registry(oauth_client: MagicMock) -> MagicMock:
    registry = MagicMock()
    registry.create_client.return_value = oauth_client
    return registry


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(db: Database, oauth_registry):
    """Return an async context manager that replaces the real lifespan.

    Wires test stores into app.state so routes see isolated test DBs rather
    than the configured database, and a mocked OAuth registry so no request
    ever reaches a real provider.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.db = db
        app.state.blog_store = BlogStore(db)
        app.state.auth_store = AuthorizationStore(db)
        app.state.oauth = oauth_registry
        yield

    return test_lifespan


@pytest.fixture
def client(db: Database, auth_store: AuthorizationStore, oauth_registry) -> Generator[TestClient, None, None]:
    """TestClient with follow_redirects=False so tests can assert on Location headers."""
    app.router.lifespan_context = _patch_lifespan(db, oauth_registry)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as test_client:
        yield test_client


@pytest.fixture
def editor_token(auth_store: AuthorizationStore) -> str:
    return issue_session_token(EDITOR_SUBJECT)


@pytest.fixture
def editor_headers(editor_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {editor_token}"}


@pytest.fixture
def editor_subject() -> str:
    return EDITOR_SUBJECT
