"""
Shared test fixtures and helpers for the Portcullis test suite.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import pytest

from portcullis.auth import MemoryUserProvider, SessionGuard, SessionGuardConfig
from portcullis.events import Emitter
from portcullis.http import CookieCipher, HttpContext
from portcullis.sessions import Session


SECRET_KEY = "test-secret-key-that-is-long-enough"


# ============================================================================
# Domain helpers
# ============================================================================

@dataclass
class User:
    id: Any
    email: str


class EventRecorder:
    """Collects every event emitted on an emitter."""

    def __init__(self, emitter: Emitter):
        self.events: list[tuple[str, dict]] = []
        emitter.on_any(lambda name, payload: self.events.append((name, payload)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def count(self, name: str) -> int:
        return sum(1 for event_name, _ in self.events if event_name == name)

    def payloads(self, name: str) -> list[dict]:
        return [payload for event_name, payload in self.events if event_name == name]

    def clear(self) -> None:
        self.events.clear()


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def cipher() -> CookieCipher:
    return CookieCipher(SECRET_KEY)


@pytest.fixture
def emitter() -> Emitter:
    return Emitter()


@pytest.fixture
def recorder(emitter) -> EventRecorder:
    return EventRecorder(emitter)


@pytest.fixture
def users() -> list[User]:
    return [
        User(id=42, email="ada@example.com"),
        User(id=7, email="grace@example.com"),
    ]


@pytest.fixture
def provider(users) -> MemoryUserProvider:
    return MemoryUserProvider(users)


@pytest.fixture
def guard_config() -> SessionGuardConfig:
    return SessionGuardConfig(remember_me_tokens_age=timedelta(days=30))


@pytest.fixture
def make_ctx(cipher):
    """Build an HTTP context for one simulated request."""

    def _make(
        session_data: Optional[dict] = None,
        cookies: Optional[dict] = None,
        with_session: bool = True,
    ) -> HttpContext:
        session = Session(data=dict(session_data or {})) if with_session else None
        return HttpContext.create(cipher=cipher, cookies=cookies, session=session)

    return _make


@pytest.fixture
def make_guard(emitter, provider, guard_config):
    """Build a ``web`` session guard for a context."""

    def _make(ctx: HttpContext, name: str = "web", config: Optional[SessionGuardConfig] = None) -> SessionGuard:
        return SessionGuard(name, ctx, emitter, provider, config or guard_config)

    return _make


@pytest.fixture
def remember_cookie(make_ctx, make_guard, users):
    """
    Log user 7 in with "remember me" and return the sealed cookie value
    the browser would send on its next request.
    """

    async def _issue(user: Optional[User] = None) -> str:
        ctx = make_ctx()
        guard = make_guard(ctx)
        await guard.login(user or users[1], remember=True)
        return ctx.response.cookies["remember_web"].value

    return _issue


@pytest.fixture
def make_user():
    def _make(id: Any, email: str = "someone@example.com") -> User:
        return User(id=id, email=email)

    return _make
