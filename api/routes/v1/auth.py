"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/auth/signup   -- create an account (public)
  POST /api/v1/auth/signin   -- password sign-in; sets the session cookie (public)
  POST /api/v1/auth/signout  -- ends the cookie's session; expires the cookie (public)
  GET  /api/v1/auth/me       -- current account (requires session)

Error policy:
  ValidationError / DuplicateAccountError messages are returned verbatim --
  they describe the caller's own input.
  Unknown username and wrong password share one generic 401 so the response
  never reveals whether an account exists.
  StorageError, OrphanedSessionError and exhausted IdCollisionError are left
  to the app-level handlers in api/main.py (logged, opaque 500).

Handlers are plain `def` because every store call is blocking I/O; FastAPI
runs them in its thread pool.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import AccountResponse, MessageResponse, SigninRequest, SignupRequest
from auth.cookies import (
    cookie_from_request,
    decode_session_cookie,
    encode_session_cookie,
    expire_cookie_directive,
    set_session_cookie,
)
from auth.dependencies import get_current_account
from auth.errors import DuplicateAccountError, IdCollisionError, NotFoundError, ValidationError
from auth.models import Account, Session
from auth.sessions import SessionStore
from auth.store import AccountStore, authenticate_account
from core.config import get_settings

logger = logging.getLogger("gatehouse.api")

# Auth policy:
# - POST /api/v1/auth/signup:   public
# - POST /api/v1/auth/signin:   public -- sign-in endpoint must be unauthenticated
# - POST /api/v1/auth/signout:  public -- a stale or missing cookie still gets the expire directive
# - GET  /api/v1/auth/me:       requires session (get_current_account)
router = APIRouter()


@router.post("/auth/signup", response_model=AccountResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> AccountResponse:
    """Create an account from username, password (+ confirmation) and optional names."""
    account_store: AccountStore = request.app.state.account_store

    if body.password != body.password_confirm:
        raise HTTPException(
            status_code=400,
            detail={"code": "password_mismatch", "message": "Passwords do not match."},
        )
    try:
        account = account_store.create_account(
            body.username,
            body.password,
            first_name=body.first_name,
            last_name=body.last_name,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "validation_error", "message": exc.message, "detail": exc.field},
        ) from exc
    except DuplicateAccountError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": str(exc)},
        ) from exc
    return AccountResponse.from_account(account)


@router.post("/auth/signin", response_model=AccountResponse)
def signin(request: Request, body: SigninRequest) -> JSONResponse:
    """Verify username/password, issue a session, and set the session cookie.

    No session is created when the credentials are wrong.
    """
    account_store: AccountStore = request.app.state.account_store
    session_store: SessionStore = request.app.state.session_store

    account = authenticate_account(account_store, body.username, body.password)
    if account is None:
        logger.info("Sign-in failed for %s", body.username)
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    session = _issue_session(session_store, account, get_settings().session_issue_attempts)
    resp = JSONResponse(status_code=200, content=AccountResponse.from_account(account).model_dump())
    set_session_cookie(resp, encode_session_cookie(session))
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signout", response_model=MessageResponse)
def signout(request: Request) -> JSONResponse:
    """End the session named by the cookie (if any) and tell the client to drop the cookie."""
    session_store: SessionStore = request.app.state.session_store

    cookie = cookie_from_request(request.cookies)
    if cookie is not None:
        try:
            session_store.terminate_session(decode_session_cookie(cookie))
        except NotFoundError:
            # Already signed out or expired; the client still needs the directive.
            logger.info("Sign-out for a session that no longer exists")

    resp = JSONResponse(content=MessageResponse(message="Signed out.").model_dump())
    set_session_cookie(resp, expire_cookie_directive())
    return resp


@router.get("/auth/me", response_model=AccountResponse)
def me(current_account: Account = Depends(get_current_account)) -> AccountResponse:
    """Return profile information for the currently authenticated account."""
    return AccountResponse.from_account(current_account)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _issue_session(session_store: SessionStore, account: Account, attempts: int) -> Session:
    """Call issue_session() up to `attempts` times, each with a fresh random id.

    The store itself never retries; this bound lives at the call site.
    Raises IdCollisionError when every attempt collides.
    """
    for attempt in range(1, attempts + 1):
        try:
            return session_store.issue_session(account)
        except IdCollisionError:
            logger.warning("Session id collision for %s (attempt %d/%d)", account.username, attempt, attempts)
    raise IdCollisionError(f"Could not issue a session after {attempts} attempts")
