"""
Portcullis Auth - Remember me tokens.

A remember me token is a long-lived credential that re-authenticates a
user whose session has ended. Only a SHA-256 hash of the secret is kept
by the provider; the plaintext is handed out once, wrapped in a
``Secret``, so it can be written into the cookie and then forgotten.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from .faults import AUTH_SECRET_RELEASED


# ============================================================================
# Secret - one-time readable value
# ============================================================================

class Secret:
    """
    Wrapper around a sensitive string that can be read exactly once.

    ``release()`` hands out the plaintext and drops the reference held by
    the wrapper. Reading again raises ``AUTH_SECRET_RELEASED``. The value
    never shows up in ``str()``, ``repr()`` or logs.

    Example:
        >>> secret = Secret("s3cr3t")
        >>> secret.release()
        's3cr3t'
        >>> secret.released
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: str):
        self._value: str | None = value

    def release(self) -> str:
        """Return the plaintext and clear it."""
        if self._value is None:
            raise AUTH_SECRET_RELEASED()
        value, self._value = self._value, None
        return value

    @property
    def released(self) -> bool:
        return self._value is None

    def __str__(self) -> str:
        return "[redacted]"

    def __repr__(self) -> str:
        return "Secret([redacted])"


# ============================================================================
# RememberMeToken
# ============================================================================

def _hash_secret(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


@dataclass
class TransientToken:
    """Freshly minted token material, before a provider stores it."""
    identifier: str
    tokenable_id: Any
    hash: str
    secret: Secret
    expires_at: datetime | None


@dataclass
class RememberMeToken:
    """
    Stored remember me token.

    Attributes:
        identifier: Stable lookup key (never secret)
        tokenable_id: Id of the user owning the token
        hash: SHA-256 hex digest of the secret part
        created_at: Creation time
        updated_at: Last update time
        expires_at: Expiry time (None = never expires)
        value: Cookie payload, only present on new/recycled tokens
    """
    identifier: str
    tokenable_id: Any
    hash: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime | None = None
    value: Secret | None = field(default=None, repr=False)

    # Separator between identifier and secret in the cookie payload
    SEPARATOR = "."

    @classmethod
    def create_transient(
        cls,
        user_id: Any,
        size: int = 40,
        expires_in: timedelta | None = None,
    ) -> TransientToken:
        """
        Mint identifier and secret for a new token.

        Args:
            user_id: Owner of the token
            size: Secret length in bytes of entropy
            expires_in: Lifetime (None = never expires)

        Returns:
            TransientToken carrying the one-time secret
        """
        secret = secrets.token_urlsafe(size)
        expires_at = None
        if expires_in is not None:
            expires_at = datetime.now(timezone.utc) + expires_in

        return TransientToken(
            identifier=secrets.token_urlsafe(16),
            tokenable_id=user_id,
            hash=_hash_secret(secret),
            secret=Secret(secret),
            expires_at=expires_at,
        )

    @classmethod
    def from_transient(cls, transient: TransientToken) -> RememberMeToken:
        """Build the stored token and attach the cookie payload to it."""
        token = cls(
            identifier=transient.identifier,
            tokenable_id=transient.tokenable_id,
            hash=transient.hash,
            expires_at=transient.expires_at,
        )
        token.value = Secret(
            f"{transient.identifier}{cls.SEPARATOR}{transient.secret.release()}"
        )
        return token

    @classmethod
    def decode(cls, payload: str) -> tuple[str, Secret] | None:
        """
        Split a cookie payload into identifier and secret.

        Returns:
            (identifier, secret) or None if the payload is malformed
        """
        if not isinstance(payload, str) or cls.SEPARATOR not in payload:
            return None

        identifier, secret = payload.split(cls.SEPARATOR, 1)
        if not identifier or not secret:
            return None

        return identifier, Secret(secret)

    def verify(self, secret: Secret) -> bool:
        """Constant-time comparison of the secret against the stored hash."""
        return hmac.compare_digest(_hash_secret(secret.release()), self.hash)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False

        if now is None:
            now = datetime.now(timezone.utc)

        return now >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict (never includes the secret)."""
        return {
            "identifier": self.identifier,
            "tokenable_id": self.tokenable_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
