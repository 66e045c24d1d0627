"""Unit tests for auth/cookies.py -- session cookie protocol.

Covers:
- encode: well-known name, id as value, one-day max-age, Secure + HttpOnly always set
- decode: returns raw value; wrong name raises WrongCookieNameError; no shape validation
- expire directive: sentinel value, negative max-age, same name and flags
- set_session_cookie() renders the attributes onto a Starlette response
"""

from __future__ import annotations

import pytest
from starlette.responses import Response

from auth.cookies import (
    SESSION_COOKIE_DELETED,
    SESSION_COOKIE_MAX_AGE,
    SESSION_COOKIE_NAME,
    SessionCookie,
    cookie_from_request,
    decode_session_cookie,
    encode_session_cookie,
    expire_cookie_directive,
    set_session_cookie,
)
from auth.errors import WrongCookieNameError
from auth.models import Session


def _session() -> Session:
    return Session(id="0123456789abcdef0123456789abcdef", username="alice_01")


class TestEncodeDecode:
    def test_encode_attributes(self) -> None:
        cookie = encode_session_cookie(_session())
        assert cookie.name == SESSION_COOKIE_NAME == "session_id"
        assert cookie.value == "0123456789abcdef0123456789abcdef"
        assert cookie.max_age == SESSION_COOKIE_MAX_AGE == 86400
        assert cookie.secure is True
        assert cookie.http_only is True

    def test_decode_returns_session_id(self) -> None:
        assert decode_session_cookie(encode_session_cookie(_session())) == _session().id

    def test_decode_wrong_name(self) -> None:
        with pytest.raises(WrongCookieNameError) as exc_info:
            decode_session_cookie(SessionCookie(name="access_token", value=_session().id))
        assert exc_info.value.name == "access_token"

    def test_decode_does_not_validate_shape(self) -> None:
        assert decode_session_cookie(SessionCookie(name=SESSION_COOKIE_NAME, value="garbage")) == "garbage"


class TestExpireDirective:
    def test_attributes(self) -> None:
        cookie = expire_cookie_directive()
        assert cookie.name == SESSION_COOKIE_NAME
        assert cookie.value == SESSION_COOKIE_DELETED == "deleted"
        assert cookie.max_age < 0
        assert cookie.secure is True
        assert cookie.http_only is True


class TestRequestResponseBridge:
    def test_cookie_from_request(self) -> None:
        assert cookie_from_request({}) is None
        assert cookie_from_request({"other": "x"}) is None
        cookie = cookie_from_request({"session_id": "abc"})
        assert cookie == SessionCookie(name="session_id", value="abc")

    def test_set_session_cookie_header(self) -> None:
        resp = Response()
        set_session_cookie(resp, encode_session_cookie(_session()))
        header = resp.headers["set-cookie"]
        assert header.startswith("session_id=0123456789abcdef0123456789abcdef")
        lowered = header.lower()
        assert "max-age=86400" in lowered
        assert "secure" in lowered
        assert "httponly" in lowered

    def test_set_expire_directive_header(self) -> None:
        resp = Response()
        set_session_cookie(resp, expire_cookie_directive())
        header = resp.headers["set-cookie"].lower()
        assert header.startswith("session_id=deleted")
        assert "max-age=-1" in header
