"""
Portcullis Sessions - Core types.

Defines the request-scoped session the guards read and write:
- SessionID: Opaque cryptographic identifier
- Session: Key/value state container with regeneration
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def hash_session_id(session_id: str) -> str:
    """Hash a session id for logging (never log raw ids)."""
    return f"sha256:{hashlib.sha256(str(session_id).encode()).hexdigest()[:16]}"


# ============================================================================
# SessionID - Opaque Cryptographic Identifier
# ============================================================================

class SessionID:
    """
    Opaque session identifier with cryptographic randomness.

    Rules:
    - Never encode meaning (no user ID, no timestamps)
    - Cryptographically random (32 bytes = 256 bits entropy)
    - URL-safe encoding
    - Prefixed for identification (sess_)

    Example:
        >>> sid = SessionID()
        >>> str(sid)
        'sess_kJ8...'
        >>> SessionID.from_string(str(sid))
        SessionID(sess_kJ8...)
    """

    __slots__ = ("_raw", "_encoded")

    def __init__(self, raw: bytes | None = None):
        if raw is None:
            raw = secrets.token_bytes(32)
        elif len(raw) != 32:
            raise ValueError("Session ID must be exactly 32 bytes")

        self._raw = raw
        self._encoded = f"sess_{base64.urlsafe_b64encode(raw).decode().rstrip('=')}"

    def __str__(self) -> str:
        return self._encoded

    def __repr__(self) -> str:
        return f"SessionID({self._encoded[:16]}...)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SessionID):
            return False
        return self._raw == other._raw

    def __hash__(self) -> int:
        return hash(self._raw)

    @classmethod
    def from_string(cls, encoded: str) -> SessionID:
        """
        Parse session ID from encoded string.

        Args:
            encoded: Encoded session ID (sess_...)

        Returns:
            SessionID instance

        Raises:
            ValueError: If format is invalid
        """
        if not encoded.startswith("sess_"):
            raise ValueError("Invalid session ID format: must start with 'sess_'")

        raw_b64 = encoded[5:]

        # Add padding if needed (base64 requires multiple of 4)
        padding = 4 - (len(raw_b64) % 4)
        if padding != 4:
            raw_b64 += "=" * padding

        try:
            raw = base64.urlsafe_b64decode(raw_b64)
        except Exception as e:
            raise ValueError(f"Invalid session ID encoding: {e}")

        return cls(raw)

    def fingerprint(self) -> str:
        """Hashed form safe to put in logs."""
        return hash_session_id(self._encoded)


# ============================================================================
# Session - Request-scoped state
# ============================================================================

@dataclass
class Session:
    """
    Request-scoped session state.

    Guards only rely on ``session_id``, ``get``, ``put``, ``forget`` and
    ``regenerate``. Regeneration swaps the identifier and keeps the data,
    which is what defeats session fixation after a privilege change.

    Attributes:
        id: Current identifier
        data: Session values
        created_at: When session was created
        regenerated: Whether the id changed during this request
        initial_id: Identifier the request arrived with

    Example:
        >>> session = Session()
        >>> session.put("auth_web", 42)
        >>> old = session.session_id
        >>> session.regenerate()
        >>> session.session_id != old and session.get("auth_web") == 42
        True
    """

    id: SessionID = field(default_factory=SessionID)
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    regenerated: bool = False
    initial_id: SessionID | None = field(default=None, repr=False)

    # Internal tracking
    _dirty: bool = field(default=False, repr=False)

    def __post_init__(self) -> None:
        if self.initial_id is None:
            self.initial_id = self.id

    @property
    def session_id(self) -> str:
        return str(self.id)

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def has(self, key: str) -> bool:
        return key in self.data

    def all(self) -> dict[str, Any]:
        """Shallow copy of the session values."""
        return dict(self.data)

    def put(self, key: str, value: Any) -> None:
        """Set a value (marks dirty)."""
        self.data[key] = value
        self._dirty = True

    def forget(self, key: str) -> None:
        """Remove a value if present (marks dirty)."""
        if key in self.data:
            del self.data[key]
            self._dirty = True

    def regenerate(self) -> None:
        """Issue a fresh identifier, keeping the data."""
        self.id = SessionID()
        self.regenerated = True
        self._dirty = True

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def mark_clean(self) -> None:
        self._dirty = False
