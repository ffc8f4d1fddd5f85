"""
Portcullis Sessions - Session capability protocol.

Guards depend on this narrow interface rather than on ``Session``
itself, so any session implementation exposing the same operations can
back a guard.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """
    Key/value storage scoped to the current request's session.

    ``session_id`` is read by guards at the start of an operation and is
    reported in events even if the session is regenerated afterwards.
    """

    @property
    def session_id(self) -> str:
        ...

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def put(self, key: str, value: Any) -> None:
        ...

    def forget(self, key: str) -> None:
        ...

    def regenerate(self) -> None:
        ...
