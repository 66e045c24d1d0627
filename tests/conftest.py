"""
tests/conftest.py -- Shared test fixtures for Gatehouse.

This module provides:
  - account_store / session_store: isolated file-backed SQLite stores per test
  - client: TestClient wired to those stores via a patched lifespan

Design: temporary-file SQLite (not :memory:) because the stores open several
pooled connections and TestClient runs sync handlers in a thread pool. A plain
:memory: URL would hand each connection its own empty database.

The client talks to https://testserver because the session cookie is always
Secure -- the cookie jar would never send it back over plain http.
"""

from __future__ import annotations

import re
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.sessions import SessionStore
from auth.store import AccountStore

_SESSION_COOKIE_RE = re.compile(r"session_id=([^;]*)")


@pytest.fixture
def account_store(tmp_path: Path) -> Generator[AccountStore, None, None]:
    store = AccountStore(f"sqlite:///{tmp_path / 'accounts.db'}")
    yield store
    store.close()


@pytest.fixture
def session_store(tmp_path: Path, account_store: AccountStore) -> Generator[SessionStore, None, None]:
    store = SessionStore(account_store, f"sqlite:///{tmp_path / 'sessions.db'}")
    yield store
    store.close()


def _patch_lifespan(account_store: AccountStore, session_store: SessionStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the per-test stores into app.state so routes never touch the
    default database files. No purge task -- tests call purge_expired() directly.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = account_store
        app.state.session_store = session_store
        yield

    return test_lifespan


@pytest.fixture
def client(account_store: AccountStore, session_store: SessionStore) -> Generator[TestClient, None, None]:
    """TestClient over the real app with isolated stores."""
    app.router.lifespan_context = _patch_lifespan(account_store, session_store)
    with TestClient(app, base_url="https://testserver", raise_server_exceptions=True) as c:
        yield c


def session_cookie_headers(resp) -> list[str]:
    """Return every Set-Cookie header on resp that concerns the session cookie."""
    return [v for k, v in resp.headers.multi_items() if k.lower() == "set-cookie" and v.startswith("session_id=")]


def session_id_from(resp) -> str:
    """Extract the session id value from resp's Set-Cookie header."""
    headers = session_cookie_headers(resp)
    assert len(headers) == 1, f"Expected exactly one session cookie, got: {headers}"
    match = _SESSION_COOKIE_RE.match(headers[0])
    assert match is not None
    return match.group(1)
