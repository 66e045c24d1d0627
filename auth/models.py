"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these own the domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A registered identity.

    username is the primary key and never changes after creation.
    password_hash is the hex SHA-256 digest produced by
    auth.passwords.hash_password() -- plaintext is never stored.
    first_name / last_name are optional profile fields with no policy beyond
    what the caller enforces.
    """

    username: str
    password_hash: str
    first_name: str | None = None
    last_name: str | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert


@dataclass
class Session:
    """A server-held grant binding a random id to an account's username.

    username is copied by value at issue time; the session does not follow
    later changes to the account record.
    """

    id: str  # 32 hex chars (128 random bits)
    username: str
    created_at: float = 0.0  # UNIX epoch seconds, set at issue time
