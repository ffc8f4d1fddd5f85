"""
Portcullis Sessions - request-scoped session state for guards.

Exports:
- Session: Key/value container with regeneration
- SessionID: Opaque identifier
- SessionStore: Protocol guards depend on
"""

from .core import Session, SessionID, hash_session_id
from .store import SessionStore

__all__ = [
    "Session",
    "SessionID",
    "SessionStore",
    "hash_session_id",
]
