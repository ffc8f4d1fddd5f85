"""
Encrypted cookies and the request/response context.
"""

from datetime import datetime, timedelta, timezone

import pytest

from portcullis.faults import FaultDomain
from portcullis.http import COOKIE_KEY_MISSING, CookieCipher, HttpContext, Request, Response


# ============================================================================
# CookieCipher
# ============================================================================

class TestCookieCipher:

    def test_roundtrip(self, cipher):
        sealed = cipher.encrypt("remember_web", "abc.def")
        assert "abc.def" not in sealed
        assert cipher.decrypt("remember_web", sealed) == "abc.def"

    def test_bound_to_cookie_name(self, cipher):
        sealed = cipher.encrypt("remember_web", "abc.def")
        assert cipher.decrypt("remember_admin", sealed) is None

    def test_tampered(self, cipher):
        sealed = cipher.encrypt("remember_web", "abc.def")
        tampered = sealed[:-4] + ("AAAA" if not sealed.endswith("AAAA") else "BBBB")
        assert cipher.decrypt("remember_web", tampered) is None

    def test_other_key(self, cipher):
        sealed = CookieCipher("another-secret").encrypt("remember_web", "abc.def")
        assert cipher.decrypt("remember_web", sealed) is None

    def test_garbage(self, cipher):
        assert cipher.decrypt("remember_web", "not-a-token") is None
        assert cipher.decrypt("remember_web", "ünïcode") is None

    def test_missing_key(self):
        with pytest.raises(COOKIE_KEY_MISSING) as exc:
            CookieCipher(None)
        assert exc.value.domain == FaultDomain.CONFIG

        with pytest.raises(COOKIE_KEY_MISSING):
            CookieCipher("")

    def test_bytes_key(self):
        cipher = CookieCipher(b"bytes-secret")
        assert cipher.decrypt("c", cipher.encrypt("c", 1)) == 1


# ============================================================================
# Request / Response
# ============================================================================

class TestRequest:

    def test_parse_cookie_header(self):
        request = Request(headers={"Cookie": "a=1; b=two"})
        assert request.cookies == {"a": "1", "b": "two"}
        assert request.cookie("b") == "two"
        assert request.cookie("missing", "x") == "x"

    def test_no_cookies(self):
        assert Request().cookies == {}

    def test_encrypted_cookie(self, cipher):
        request = Request({"remember_web": cipher.encrypt("remember_web", "v")}, cipher=cipher)
        assert request.encrypted_cookie("remember_web") == "v"
        assert request.encrypted_cookie("absent") is None

    def test_encrypted_cookie_invalid(self, cipher):
        request = Request({"remember_web": "junk"}, cipher=cipher)
        assert request.encrypted_cookie("remember_web", "fallback") == "fallback"

    def test_encrypted_cookie_without_cipher(self):
        with pytest.raises(COOKIE_KEY_MISSING):
            Request({"remember_web": "junk"}).encrypted_cookie("remember_web")

    def test_absent_cookie_without_cipher(self):
        assert Request().encrypted_cookie("remember_web", "fallback") == "fallback"


class TestResponse:

    def test_encrypted_cookie(self, cipher):
        response = Response(cipher=cipher)
        cookie = response.encrypted_cookie("remember_web", "v", httponly=True, max_age=60)

        assert response.cookies["remember_web"] is cookie
        assert cipher.decrypt("remember_web", cookie.value) == "v"

    def test_encrypted_cookie_without_cipher(self):
        with pytest.raises(COOKIE_KEY_MISSING):
            Response().encrypted_cookie("remember_web", "v")

    def test_serialize(self):
        response = Response()
        response.set_cookie("a", "1", max_age=60, samesite="Strict", domain="example.com")
        [(name, value)] = response.headers()

        assert name == "set-cookie"
        assert value == "a=1; Max-Age=60; Path=/; Domain=example.com; Secure; HttpOnly; SameSite=Strict"

    def test_clear_cookie(self):
        response = Response()
        response.set_cookie("a", "1")
        response.clear_cookie("a")

        cookie = response.cookies["a"]
        assert cookie.value == ""
        assert cookie.max_age == 0
        assert cookie.expires == datetime.fromtimestamp(0, tz=timezone.utc)
        assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in cookie.serialize()


class TestHttpContext:

    def test_create(self, cipher):
        ctx = HttpContext.create(cipher=cipher, cookies={"a": "1"})
        assert ctx.request.cipher is cipher
        assert ctx.response.cipher is cipher
        assert ctx.request.cookie("a") == "1"
        assert ctx.session is None
