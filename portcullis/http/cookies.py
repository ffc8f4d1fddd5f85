"""
Portcullis HTTP - Encrypted cookies.

Encrypted cookies hide their payload from the client and detect any
tampering. The cookie name is sealed into the ciphertext, so a value
lifted from one cookie cannot be replayed under another name.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from typing import Any, Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from portcullis.faults import Fault, FaultDomain

logger = logging.getLogger("portcullis.http")


class COOKIE_KEY_MISSING(Fault):
    """Encrypted cookies need an application secret."""
    domain = FaultDomain.CONFIG
    code = "HTTP_CONFIG_001"
    message = "Cannot encrypt cookies without a secret key"


class CookieCipher:
    """
    Fernet (AES-128-CBC + HMAC-SHA256) cookie encryption.

    The application secret is stretched with SHA-256 into a Fernet key,
    so any non-empty string works as ``secret_key``.

    Example:
        >>> cipher = CookieCipher("app-secret")
        >>> sealed = cipher.encrypt("remember_web", "abc.def")
        >>> cipher.decrypt("remember_web", sealed)
        'abc.def'
        >>> cipher.decrypt("remember_api", sealed) is None
        True
    """

    def __init__(self, secret_key: Union[str, bytes, None]):
        if not secret_key:
            raise COOKIE_KEY_MISSING()

        if isinstance(secret_key, str):
            secret_key = secret_key.encode("utf-8")

        key = base64.urlsafe_b64encode(hashlib.sha256(secret_key).digest())
        self._fernet = Fernet(key)

    def encrypt(self, name: str, value: Any) -> str:
        """Seal ``value`` for cookie ``name``."""
        payload = json.dumps({"name": name, "value": value}, separators=(",", ":"))
        return self._fernet.encrypt(payload.encode("utf-8")).decode("ascii")

    def decrypt(self, name: str, sealed: str, max_age: Optional[int] = None) -> Any:
        """
        Open a sealed cookie value.

        Args:
            name: Cookie name the value was read from
            sealed: Ciphertext
            max_age: Reject values older than this many seconds

        Returns:
            Original value, or None when the value is tampered, expired,
            or was sealed for another cookie
        """
        try:
            plaintext = self._fernet.decrypt(sealed.encode("ascii"), ttl=max_age)
        except (InvalidToken, UnicodeEncodeError, AttributeError):
            logger.debug("Rejected encrypted cookie %s", name)
            return None

        try:
            payload = json.loads(plaintext)
        except ValueError:
            return None

        if not isinstance(payload, dict) or payload.get("name") != name:
            logger.debug("Encrypted cookie %s was sealed for another name", name)
            return None

        return payload.get("value")
