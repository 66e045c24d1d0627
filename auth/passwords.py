"""
auth/passwords.py -- Username/password policy and password hashing.

Pure functions, no I/O. The stores call these; nothing here touches storage.

Hashing: SHA-256 over the UTF-8 bytes, hex-encoded (64 chars). The digest is
deterministic on purpose -- account records and tests compare digests
directly, and the stored format is a fixed-length hex string. Comparison
always goes through hmac.compare_digest so the time taken does not depend on
how many leading characters match.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hashlib
import hmac
import re

from auth.errors import ValidationError

USERNAME_LEN_MIN = 8
USERNAME_LEN_MAX = 40
PASSWORD_LEN_MIN = 8
PASSWORD_LEN_MAX = 40

_USERNAME_RE = re.compile(r"[A-Za-z0-9_]+")


def validate_username(username: str) -> None:
    """Raise ValidationError unless username satisfies the policy.

    Length is counted in code points (len() on str), not bytes, so a
    multi-byte character counts once.
    """
    length = len(username)
    if length < USERNAME_LEN_MIN or length > USERNAME_LEN_MAX:
        raise ValidationError(
            "username",
            f"Username must be len characters long, where {USERNAME_LEN_MIN}<=len<={USERNAME_LEN_MAX}",
        )
    if not _USERNAME_RE.fullmatch(username):
        raise ValidationError(
            "username",
            "Username may only contain letters A-Z, a-z, digits 0-9 and underscores",
        )


def validate_password(password: str) -> None:
    """Raise ValidationError unless password length is within bounds. Any characters are allowed."""
    length = len(password)
    if length < PASSWORD_LEN_MIN or length > PASSWORD_LEN_MAX:
        raise ValidationError(
            "password",
            f"Password must be len characters long, where {PASSWORD_LEN_MIN}<=len<={PASSWORD_LEN_MAX}",
        )


def hash_password(password: str) -> str:
    """Return the hex-encoded SHA-256 digest of password."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def check_password_hash(password_hash: str, candidate: str) -> bool:
    """Return True if candidate hashes to password_hash (constant-time compare)."""
    return hmac.compare_digest(password_hash.encode("utf-8"), hash_password(candidate).encode("utf-8"))
