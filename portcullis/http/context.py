"""
Portcullis HTTP - Request context.

The minimum HTTP surface a session guard needs: reading encrypted
cookies from the request, writing and clearing cookies on the response,
and the request's session. Frameworks adapt their own request objects
to this shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import formatdate
from http.cookies import CookieError, SimpleCookie
from typing import Any, Mapping, Optional

from .cookies import COOKIE_KEY_MISSING, CookieCipher

logger = logging.getLogger("portcullis.http")


# ============================================================================
# Request
# ============================================================================

class Request:
    """
    Incoming request cookies.

    Args:
        cookies: Raw (still encrypted) cookie values by name
        cipher: Cipher used for encrypted cookies
        headers: Optional headers; ``cookie`` is parsed when ``cookies``
            is not given
    """

    def __init__(
        self,
        cookies: Optional[Mapping[str, str]] = None,
        *,
        cipher: Optional[CookieCipher] = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.cipher = cipher
        self._cookies = dict(cookies) if cookies is not None else None

    @property
    def cookies(self) -> Mapping[str, str]:
        """Get parsed cookies."""
        if self._cookies is None:
            cookie_header = self.headers.get("cookie", "")
            self._cookies = {}
            if cookie_header:
                cookie = SimpleCookie()
                try:
                    cookie.load(cookie_header)
                except CookieError:
                    logger.warning("Ignoring malformed cookie header")
                else:
                    self._cookies = {key: morsel.value for key, morsel in cookie.items()}
        return self._cookies

    def cookie(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single raw cookie value."""
        return self.cookies.get(name, default)

    def encrypted_cookie(self, name: str, default: Any = None) -> Any:
        """
        Read and decrypt a cookie, ``default`` if missing or invalid.

        Raises:
            COOKIE_KEY_MISSING: The cookie is present but no cipher is set
        """
        sealed = self.cookies.get(name)
        if not sealed:
            return default
        if self.cipher is None:
            raise COOKIE_KEY_MISSING()

        value = self.cipher.decrypt(name, sealed)
        return default if value is None else value


# ============================================================================
# Response
# ============================================================================

@dataclass
class Cookie:
    """Cookie queued on a response."""
    name: str
    value: str
    max_age: Optional[int] = None
    expires: Optional[datetime] = None
    path: str = "/"
    domain: Optional[str] = None
    secure: bool = True
    httponly: bool = True
    samesite: Optional[str] = "Lax"

    def serialize(self) -> str:
        """Render as a ``Set-Cookie`` header value."""
        cookie_parts = [f"{self.name}={self.value}"]

        if self.max_age is not None:
            cookie_parts.append(f"Max-Age={self.max_age}")

        if self.expires:
            cookie_parts.append(f"Expires={formatdate(self.expires.timestamp(), usegmt=True)}")

        cookie_parts.append(f"Path={self.path}")

        if self.domain:
            cookie_parts.append(f"Domain={self.domain}")

        if self.secure:
            cookie_parts.append("Secure")

        if self.httponly:
            cookie_parts.append("HttpOnly")

        if self.samesite:
            cookie_parts.append(f"SameSite={self.samesite}")

        return "; ".join(cookie_parts)


class Response:
    """
    Outgoing response cookies.

    The last cookie queued under a name wins, mirroring what a browser
    ends up storing.
    """

    def __init__(self, *, cipher: Optional[CookieCipher] = None):
        self.cipher = cipher
        self.cookies: dict[str, Cookie] = {}

    def set_cookie(self, name: str, value: str, **options: Any) -> Cookie:
        """Queue a plain cookie."""
        cookie = Cookie(name=name, value=value, **options)
        self.cookies[name] = cookie
        return cookie

    def encrypted_cookie(self, name: str, value: Any, **options: Any) -> Cookie:
        """Encrypt and queue a cookie."""
        if self.cipher is None:
            raise COOKIE_KEY_MISSING()
        return self.set_cookie(name, self.cipher.encrypt(name, value), **options)

    def clear_cookie(self, name: str, path: str = "/", domain: Optional[str] = None) -> Cookie:
        """Expire a cookie on the client."""
        return self.set_cookie(
            name,
            "",
            max_age=0,
            expires=datetime.fromtimestamp(0, tz=timezone.utc),
            path=path,
            domain=domain,
            secure=False,
            httponly=False,
            samesite=None,
        )

    def headers(self) -> list[tuple[str, str]]:
        """``Set-Cookie`` header pairs for every queued cookie."""
        return [("set-cookie", cookie.serialize()) for cookie in self.cookies.values()]


# ============================================================================
# HttpContext
# ============================================================================

@dataclass
class HttpContext:
    """
    Per-request context handed to guards.

    ``session`` is optional on purpose: a guard built for a request
    without session support reports a configuration fault instead of
    treating the caller as a guest.
    """
    request: Request
    response: Response
    session: Any = None
    state: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        *,
        cipher: Optional[CookieCipher] = None,
        cookies: Optional[Mapping[str, str]] = None,
        session: Any = None,
    ) -> HttpContext:
        """Build a context sharing one cipher between request and response."""
        return cls(
            request=Request(cookies, cipher=cipher),
            response=Response(cipher=cipher),
            session=session,
        )
