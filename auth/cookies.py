"""
auth/cookies.py -- Session cookie protocol.

Translates a session id to and from an HTTP cookie. Every cookie this module
produces carries the same well-known name, and both transport flags:

  secure=True:    only sent over HTTPS.
  http_only=True: JS cannot read the cookie (XSS mitigation).
  samesite="lax": not sent on cross-site POST (CSRF mitigation for most cases).

max_age is advisory for the browser; the session store enforces its own TTL
(see auth/sessions.py).

decode_session_cookie() does not validate the shape of the id. A malformed
value simply fails to resolve in the session store.

Layer rule: no imports from api/ or core/. set_session_cookie() accepts any
Starlette-compatible response object but does not import Starlette.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from auth.errors import WrongCookieNameError
from auth.models import Session

SESSION_COOKIE_NAME = "session_id"
SESSION_COOKIE_MAX_AGE = 86400  # one day
SESSION_COOKIE_DELETED = "deleted"


@dataclass(frozen=True)
class SessionCookie:
    name: str
    value: str
    max_age: int = SESSION_COOKIE_MAX_AGE
    secure: bool = True
    http_only: bool = True
    samesite: str = "lax"


def encode_session_cookie(session: Session) -> SessionCookie:
    """Return the cookie that binds the client to session."""
    return SessionCookie(name=SESSION_COOKIE_NAME, value=session.id, max_age=SESSION_COOKIE_MAX_AGE)


def decode_session_cookie(cookie: SessionCookie) -> str:
    """Return the raw session id carried by cookie.

    Raises WrongCookieNameError if cookie is not the session cookie.
    """
    if cookie.name != SESSION_COOKIE_NAME:
        raise WrongCookieNameError(cookie.name, SESSION_COOKIE_NAME)
    return cookie.value


def expire_cookie_directive() -> SessionCookie:
    """Return a cookie that tells the client to discard its session cookie now."""
    return SessionCookie(name=SESSION_COOKIE_NAME, value=SESSION_COOKIE_DELETED, max_age=-1)


# ---------------------------------------------------------------------------
# Request / response bridge
# ---------------------------------------------------------------------------


def cookie_from_request(cookies: Mapping[str, str]) -> SessionCookie | None:
    """Pick the session cookie out of a request's cookie mapping, if present."""
    value = cookies.get(SESSION_COOKIE_NAME)
    if value is None:
        return None
    return SessionCookie(name=SESSION_COOKIE_NAME, value=value)


def set_session_cookie(response, cookie: SessionCookie) -> None:
    """Write cookie onto a FastAPI/Starlette response as a Set-Cookie header."""
    response.set_cookie(
        cookie.name,
        value=cookie.value,
        max_age=cookie.max_age,
        secure=cookie.secure,
        httponly=cookie.http_only,
        samesite=cookie.samesite,
    )
