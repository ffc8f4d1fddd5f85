"""
Portcullis HTTP - request context and encrypted cookies.
"""

from .context import Cookie, HttpContext, Request, Response
from .cookies import COOKIE_KEY_MISSING, CookieCipher

__all__ = [
    "COOKIE_KEY_MISSING",
    "Cookie",
    "CookieCipher",
    "HttpContext",
    "Request",
    "Response",
]
