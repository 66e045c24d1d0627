"""
auth/sessions.py -- Session issuance, lookup, and termination.

A session id is both the primary key and the bearer token: whoever presents
a stored id is authenticated as its username. The id is 16 bytes from the
OS CSPRNG (secrets.token_hex), so unguessability is the only protection and
must not be weakened.

Lifecycle of an id: absent -> active (issue_session) -> absent
(terminate_session, or expiry). There is no distinct "expired" state: once a
record is older than ttl_seconds, resolve_session() treats it as absent and
removes it. purge_expired() removes every such record in one pass.

Collision policy: issue_session() writes with put_if_absent() and raises
IdCollisionError if the id is already taken. It never retries -- the caller
decides whether to call again with a fresh id.

DB path: auth/gatehouse_sessions.db by default.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path

from sqlalchemy import Column, Float, MetaData, String, Table
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import IdCollisionError, NotFoundError, OrphanedSessionError, StorageError
from auth.models import Account, Session
from auth.store import AccountStore
from auth.table import KeyedTable, make_engine

logger = logging.getLogger("gatehouse.sessions")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'gatehouse_sessions.db'}"
_DEFAULT_TTL = 60 * 60 * 24  # 24 hours in seconds

ID_BYTE_LEN = 16  # 128 bits -> 32 hex chars

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("username", String(40), nullable=False, index=True),
    Column("created_at", Float, nullable=False),
)


def generate_session_id() -> str:
    """Return a new random session id as 32 lowercase hex characters."""
    return secrets.token_hex(ID_BYTE_LEN)


def _id_prefix(session_id: str) -> str:
    # Ids are bearer tokens; only a prefix ever reaches the log.
    return session_id[:8]


class SessionStore:
    """Repository for Session records.

    accounts is used only by resolve_account(); sessions reference accounts
    by username, never by object.

    Usage:
        sessions = SessionStore(accounts)
        session = sessions.issue_session(account)
        sessions.resolve_session(session.id)   # Session or None
        sessions.terminate_session(session.id)
        sessions.close()
    """

    def __init__(self, accounts: AccountStore, db_url: str = _DEFAULT_DB_URL, ttl_seconds: int = _DEFAULT_TTL) -> None:
        self.accounts = accounts
        self.ttl_seconds = ttl_seconds
        self.engine = make_engine(db_url)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError("Could not initialise the session store") from exc
        self._table = KeyedTable(self.engine, _sessions, "id")

    def issue_session(self, account: Account) -> Session:
        """Create and persist a session for account.

        Raises IdCollisionError if the generated id already exists (nothing is
        written), StorageError on I/O failure.
        """
        session = Session(id=generate_session_id(), username=account.username, created_at=time.time())
        written = self._table.put_if_absent(session.id, username=session.username, created_at=session.created_at)
        if not written:
            logger.warning("Session id collision (%s...) for %s", _id_prefix(session.id), account.username)
            raise IdCollisionError(f"Session id {_id_prefix(session.id)}... already exists")
        logger.info("Session issued for %s (%s...)", session.username, _id_prefix(session.id))
        return session

    def resolve_session(self, session_id: str) -> Session | None:
        """Return the stored session for session_id, or None if absent or expired."""
        row = self._table.get(session_id)
        if row is None:
            return None
        if self._is_expired(row.created_at):
            self._table.delete(session_id)
            logger.info("Session expired for %s (%s...)", row.username, _id_prefix(session_id))
            return None
        return Session(id=row.id, username=row.username, created_at=row.created_at)

    def resolve_account(self, session: Session) -> Account:
        """Return the account that owns session.

        Raises OrphanedSessionError if the account no longer exists -- a data
        integrity fault, distinct from "session not found".
        """
        account = self.accounts.fetch_account(session.username)
        if account is None:
            logger.error("Orphaned session %s... references missing account %s", _id_prefix(session.id), session.username)
            raise OrphanedSessionError(session.username)
        return account

    def terminate_session(self, session_id: str) -> None:
        """Remove the stored session. Raises NotFoundError if there is none."""
        if not self._table.delete(session_id):
            raise NotFoundError(f"No session {_id_prefix(session_id)}...")
        logger.info("Session terminated (%s...)", _id_prefix(session_id))

    def purge_expired(self) -> int:
        """Delete all sessions older than the TTL. Returns number of rows removed."""
        if self.ttl_seconds <= 0:
            return 0
        cutoff = time.time() - self.ttl_seconds
        removed = self._table.delete_where(_sessions.c.created_at < cutoff)
        if removed:
            logger.info("Purged %d expired session(s)", removed)
        return removed

    def count_sessions(self, username: str | None = None) -> int:
        """Return the number of stored sessions, optionally for one username."""
        if username is None:
            return self._table.count()
        return self._table.count(_sessions.c.username == username)

    def _is_expired(self, created_at: float) -> bool:
        return self.ttl_seconds > 0 and time.time() - created_at > self.ttl_seconds

    def close(self) -> None:
        self.engine.dispose()
