"""
auth/errors.py -- Exception taxonomy for the credential and session core.

Two families, split by who may see the message:

  Caller-safe (message may be returned verbatim to the client):
    ValidationError, DuplicateAccountError

  Internal (log, then answer with an opaque failure):
    StorageError, OrphanedSessionError, IdCollisionError

NotFoundError and WrongCookieNameError sit in between: the HTTP layer turns
both into "not authenticated" / "not found" without exposing details.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error raised by the auth package."""


class ValidationError(AuthError):
    """A username or password violates the policy.

    field names the offending input ("username" or "password") so the HTTP
    layer can point at it without parsing the message.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class DuplicateAccountError(AuthError):
    """An account with the requested username already exists."""

    def __init__(self, username: str) -> None:
        super().__init__(f'User with username "{username}" already exists')
        self.username = username


class NotFoundError(AuthError):
    """The record named by a mutating operation does not exist."""


class StorageError(AuthError):
    """The underlying store could not be read or written."""


class OrphanedSessionError(AuthError):
    """A stored session references an account that no longer exists."""

    def __init__(self, username: str) -> None:
        super().__init__(f"Session owner {username!r} does not exist")
        self.username = username


class IdCollisionError(AuthError):
    """A freshly generated session id already names a stored session."""


class WrongCookieNameError(AuthError):
    """A cookie handed to the session protocol carries an unexpected name."""

    def __init__(self, name: str, expected: str) -> None:
        super().__init__(f"Invalid cookie name '{name}'. Must be {expected}")
        self.name = name
        self.expected = expected
