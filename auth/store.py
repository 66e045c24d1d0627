"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper.
AccountStore is the repository; _row_to_account is the mapper. Route and
dependency code never touches SQL directly.

Invariants:
  username is the PRIMARY KEY -- no two accounts share one. create_account()
  validates through auth.passwords before anything is written, and the
  duplicate check and insert run as one put_if_absent() under the table lock,
  so a rejected call leaves the table unchanged.

  username is immutable. password_hash changes only via change_password().

Security:
  All queries use bound parameters. No f-strings in SQL.
  Plaintext passwords never reach this module's SQL -- only digests.

DB path: auth/gatehouse_accounts.db by default.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, MetaData, String, Table, Text
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import DuplicateAccountError, NotFoundError, StorageError
from auth.models import Account
from auth.passwords import check_password_hash, hash_password, validate_password, validate_username
from auth.table import KeyedTable, make_engine

logger = logging.getLogger("gatehouse.auth")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'gatehouse_accounts.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("username", String(40), primary_key=True),
    Column("password_hash", String(64), nullable=False),  # hex SHA-256
    Column("first_name", Text),
    Column("last_name", Text),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore()
        store.create_account("alice_01", "correcthorse1", first_name="Alice")
        account = store.fetch_account("alice_01")
        store.verify_password(account, "correcthorse1")  # True
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine = make_engine(db_url)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError("Could not initialise the account store") from exc
        self._table = KeyedTable(self.engine, _accounts, "username")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_account(
        self,
        username: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> Account:
        """Validate, persist, and return a new account.

        Raises ValidationError if username or password breaks the policy,
        DuplicateAccountError if the username is taken, StorageError on I/O
        failure. Validation runs before any storage access.
        """
        validate_username(username)
        validate_password(password)

        account = Account(
            username=username,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            created_at=_now_iso(),
        )
        written = self._table.put_if_absent(
            account.username,
            password_hash=account.password_hash,
            first_name=account.first_name,
            last_name=account.last_name,
            created_at=account.created_at,
        )
        if not written:
            raise DuplicateAccountError(username)
        logger.info("Account created: %s", username)
        return account

    def fetch_account(self, username: str) -> Account | None:
        """Look up an account by exact username (case-sensitive). Returns None if not found."""
        row = self._table.get(username)
        return _row_to_account(row) if row is not None else None

    def verify_password(self, account: Account, candidate: str) -> bool:
        """Return True if candidate matches the account's stored hash. No side effects."""
        return check_password_hash(account.password_hash, candidate)

    def change_password(self, username: str, new_password: str) -> Account:
        """Replace the stored hash for username and return the updated account.

        Raises ValidationError for a policy violation, NotFoundError if the
        account does not exist.
        """
        validate_password(new_password)
        if not self._table.update(username, password_hash=hash_password(new_password)):
            raise NotFoundError(f"No account named {username!r}")
        logger.info("Password changed: %s", username)
        updated = self.fetch_account(username)
        if updated is None:
            raise NotFoundError(f"No account named {username!r}")
        return updated

    def has_accounts(self) -> bool:
        """Return True if at least one account exists."""
        return self._table.count() > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Credential check
# ---------------------------------------------------------------------------

# Compared against when the username is unknown so both failure paths hash
# and compare once.
_DUMMY_HASH: str = hash_password("gatehouse_timing_dummy")


def authenticate_account(store: AccountStore, username: str, password: str) -> Account | None:
    """Fetch an account and verify its password in one step.

    Returns the Account on success, None for an unknown username or a wrong
    password -- callers must not tell the two apart in their response.
    StorageError propagates.
    """
    account = store.fetch_account(username)
    if account is None:
        check_password_hash(_DUMMY_HASH, password)
        return None
    if not store.verify_password(account, password):
        return None
    return account


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        username=row.username,
        password_hash=row.password_hash,
        first_name=row.first_name,
        last_name=row.last_name,
        created_at=row.created_at,
    )
