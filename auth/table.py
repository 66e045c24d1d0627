"""
auth/table.py -- Keyed-table capability shared by the account and session stores.

Both stores need the same three primitives over a single table keyed by one
column: get, put-if-absent, delete (plus a conditional update for password
changes). KeyedTable provides them on top of SQLAlchemy Core and owns the
write lock that makes check-then-write sequences atomic.

Concurrency:
  Every mutating method holds a per-table threading.Lock for the whole
  read-check-write sequence, so two writers in the same process can never
  both pass the existence check. Reads do not take the lock; SQLite runs in
  WAL mode so readers see the last committed state without blocking.
  The PRIMARY KEY constraint backs the lock up across processes: an
  IntegrityError on insert is reported exactly like "already present".

Errors:
  Any SQLAlchemyError other than the insert IntegrityError is wrapped in
  StorageError (raise ... from exc) so callers never import sqlalchemy.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import threading
from typing import Any

from sqlalchemy import Table, create_engine, event, func, select
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement

from auth.errors import StorageError

# ---------------------------------------------------------------------------
# Engine factory
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url, with SQLite thread-sharing and WAL enabled."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Keyed table
# ---------------------------------------------------------------------------


class KeyedTable:
    """get / put_if_absent / update / delete over one table keyed by one column.

    Usage:
        table = KeyedTable(engine, _sessions, "id")
        table.put_if_absent("ab12...", username="alice_01", created_at=time.time())
        row = table.get("ab12...")
        table.delete("ab12...")
    """

    def __init__(self, engine: Engine, table: Table, key: str) -> None:
        self.engine = engine
        self.table = table
        self._key = table.c[key]
        self._lock = threading.Lock()

    def get(self, key: str) -> Row | None:
        """Return the row stored under key, or None."""
        try:
            with self.engine.connect() as conn:
                return conn.execute(self.table.select().where(self._key == key)).fetchone()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read from {self.table.name}") from exc

    def put_if_absent(self, key: str, **values: Any) -> bool:
        """Insert a row under key unless one already exists.

        Returns True if the row was written, False if key was already taken.
        Nothing is written in the False case.
        """
        with self._lock:
            try:
                with self.engine.connect() as conn:
                    existing = conn.execute(select(self._key).where(self._key == key)).first()
                    if existing is not None:
                        return False
                    conn.execute(self.table.insert().values({self._key.name: key, **values}))
                    conn.commit()
            except IntegrityError:
                # Another process won the race between our check and insert.
                return False
            except SQLAlchemyError as exc:
                raise StorageError(f"Could not write to {self.table.name}") from exc
        return True

    def update(self, key: str, **values: Any) -> bool:
        """Overwrite columns on the row under key. Returns False if there is no such row."""
        with self._lock:
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(self.table.update().where(self._key == key).values(**values))
                    conn.commit()
            except SQLAlchemyError as exc:
                raise StorageError(f"Could not write to {self.table.name}") from exc
        return result.rowcount > 0

    def delete(self, key: str) -> bool:
        """Remove the row under key. Returns False if there was nothing to remove."""
        return self.delete_where(self._key == key) > 0

    def delete_where(self, clause: ColumnElement[bool]) -> int:
        """Remove every row matching clause. Returns the number of rows removed."""
        with self._lock:
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(self.table.delete().where(clause))
                    conn.commit()
            except SQLAlchemyError as exc:
                raise StorageError(f"Could not write to {self.table.name}") from exc
        return result.rowcount

    def count(self, clause: ColumnElement[bool] | None = None) -> int:
        """Return the number of rows, optionally restricted by clause."""
        stmt = select(func.count()).select_from(self.table)
        if clause is not None:
            stmt = stmt.where(clause)
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).scalar() or 0
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read from {self.table.name}") from exc
