"""Unit tests for auth/sessions.py -- SessionStore.

Covers:
- issue_session() id format (32 lowercase hex chars) and uniqueness
- issue -> resolve -> resolve_account round trip
- terminate_session(): resolve returns None afterwards; second terminate raises NotFoundError
- Id collision raises IdCollisionError and writes nothing
- Orphaned session (owning account gone) raises OrphanedSessionError
- Server-side expiry: expired sessions resolve as None and are purged
- StorageError on an unreadable table
"""

from __future__ import annotations

import re
import time

import pytest
from sqlalchemy import text

import auth.sessions
from auth.errors import IdCollisionError, NotFoundError, OrphanedSessionError, StorageError
from auth.models import Account
from auth.sessions import SessionStore
from auth.store import AccountStore

_HEX32 = re.compile(r"^[0-9a-f]{32}$")


@pytest.fixture
def alice(account_store: AccountStore) -> Account:
    return account_store.create_account("alice_01", "correcthorse1", first_name="Alice")


class TestIssueAndResolve:
    def test_id_shape(self, session_store: SessionStore, alice: Account) -> None:
        session = session_store.issue_session(alice)
        assert _HEX32.match(session.id)
        assert session.username == "alice_01"
        assert session.created_at > 0

    def test_ids_are_unique(self, session_store: SessionStore, alice: Account) -> None:
        ids = {session_store.issue_session(alice).id for _ in range(50)}
        assert len(ids) == 50
        assert session_store.count_sessions("alice_01") == 50

    def test_round_trip(self, session_store: SessionStore, alice: Account) -> None:
        session = session_store.issue_session(alice)
        resolved = session_store.resolve_session(session.id)

        assert resolved is not None
        assert resolved.id == session.id
        assert resolved.username == "alice_01"
        assert session_store.resolve_account(resolved) == alice

    def test_unknown_id_resolves_to_none(self, session_store: SessionStore) -> None:
        assert session_store.resolve_session("0" * 32) is None

    def test_malformed_id_resolves_to_none(self, session_store: SessionStore) -> None:
        assert session_store.resolve_session("not-a-session-id; DROP TABLE sessions") is None


class TestTerminate:
    def test_terminate_then_resolve(self, session_store: SessionStore, alice: Account) -> None:
        session = session_store.issue_session(alice)
        session_store.terminate_session(session.id)
        assert session_store.resolve_session(session.id) is None

    def test_second_terminate_raises(self, session_store: SessionStore, alice: Account) -> None:
        session = session_store.issue_session(alice)
        session_store.terminate_session(session.id)
        with pytest.raises(NotFoundError):
            session_store.terminate_session(session.id)

    def test_terminate_only_removes_that_session(self, session_store: SessionStore, alice: Account) -> None:
        first = session_store.issue_session(alice)
        second = session_store.issue_session(alice)
        session_store.terminate_session(first.id)
        assert session_store.resolve_session(second.id) is not None


class TestCollision:
    def test_colliding_id_rejected(
        self, session_store: SessionStore, alice: Account, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(auth.sessions, "generate_session_id", lambda: "ab" * 16)
        session_store.issue_session(alice)

        with pytest.raises(IdCollisionError):
            session_store.issue_session(alice)
        assert session_store.count_sessions() == 1


class TestOrphanedSession:
    def test_missing_owner_raises(self, session_store: SessionStore, account_store: AccountStore, alice: Account) -> None:
        session = session_store.issue_session(alice)
        # No deletion path exists in the store API; remove the row directly.
        with account_store.engine.connect() as conn:
            conn.execute(text("DELETE FROM accounts WHERE username = 'alice_01'"))
            conn.commit()

        resolved = session_store.resolve_session(session.id)
        assert resolved is not None  # session itself still present
        with pytest.raises(OrphanedSessionError) as exc_info:
            session_store.resolve_account(resolved)
        assert exc_info.value.username == "alice_01"


class TestExpiry:
    def test_expired_session_resolves_to_none(
        self, session_store: SessionStore, alice: Account, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        session = session_store.issue_session(alice)
        later = time.time() + session_store.ttl_seconds + 60
        monkeypatch.setattr(time, "time", lambda: later)

        assert session_store.resolve_session(session.id) is None
        # Expired record was removed, so terminate sees nothing.
        with pytest.raises(NotFoundError):
            session_store.terminate_session(session.id)

    def test_purge_expired(self, session_store: SessionStore, alice: Account, monkeypatch: pytest.MonkeyPatch) -> None:
        session_store.issue_session(alice)
        session_store.issue_session(alice)
        later = time.time() + session_store.ttl_seconds + 60
        monkeypatch.setattr(time, "time", lambda: later)
        fresh = session_store.issue_session(alice)

        assert session_store.purge_expired() == 2
        assert session_store.count_sessions() == 1
        assert session_store.resolve_session(fresh.id) is not None

    def test_ttl_zero_disables_expiry(
        self, tmp_path, account_store: AccountStore, alice: Account, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store = SessionStore(account_store, f"sqlite:///{tmp_path / 'forever.db'}", ttl_seconds=0)
        try:
            session = store.issue_session(alice)
            later = time.time() + 10 * 365 * 86400
            monkeypatch.setattr(time, "time", lambda: later)
            assert store.resolve_session(session.id) is not None
            assert store.purge_expired() == 0
        finally:
            store.close()


class TestStorageFailure:
    def test_unreadable_table_raises_storage_error(self, session_store: SessionStore) -> None:
        with session_store.engine.connect() as conn:
            conn.execute(text("DROP TABLE sessions"))
            conn.commit()
        with pytest.raises(StorageError):
            session_store.resolve_session("0" * 32)
