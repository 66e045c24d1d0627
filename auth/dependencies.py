"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session cookie is the only credential. The check runs in the order the
cookie protocol prescribes:

  request.cookies -> cookie_from_request -> decode_session_cookie
                  -> SessionStore.resolve_session -> SessionStore.resolve_account

try_get_current_account() is the soft variant (returns None when the request
carries no live session). get_current_account() wraps it and raises HTTP 401.

Absent cookie, wrong cookie name, unknown id and expired id all mean "not
authenticated". StorageError and OrphanedSessionError are NOT swallowed here:
they propagate to the app's exception handlers, which log them and answer 500.

Layer rule: auth/dependencies.py may import from fastapi because this module
is part of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.cookies import cookie_from_request, decode_session_cookie
from auth.errors import WrongCookieNameError
from auth.models import Account, Session
from auth.sessions import SessionStore


def try_get_current_session(request: Request) -> Session | None:
    """Return the live Session named by the request's cookie, or None."""
    cookie = cookie_from_request(request.cookies)
    if cookie is None:
        return None
    try:
        session_id = decode_session_cookie(cookie)
    except WrongCookieNameError:
        return None
    session_store: SessionStore = request.app.state.session_store
    return session_store.resolve_session(session_id)


def try_get_current_account(request: Request) -> Account | None:
    """Return the authenticated Account, or None. Never raises for a missing/stale cookie."""
    session = try_get_current_session(request)
    if session is None:
        return None
    session_store: SessionStore = request.app.state.session_store
    return session_store.resolve_account(session)


def get_current_account(request: Request) -> Account:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(account: Account = Depends(get_current_account)): ...
    """
    account = try_get_current_account(request)
    if account is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return account
