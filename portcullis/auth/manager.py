"""
Portcullis Auth - Authentication Manager

App-scoped registry of named guards, and the request-scoped
authenticators handing out one guard instance per guard name.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Optional, Protocol

from portcullis.events import Emitter
from portcullis.http import HttpContext
from portcullis.sessions import Session

from .config import AuthConfig, SessionGuardConfig
from .faults import AUTH_GUARD_NOT_CONFIGURED, AUTH_UNAUTHORIZED_ACCESS
from .providers import UserProvider, UserT
from .session_guard import SessionGuard

logger = logging.getLogger("portcullis.auth")


class GuardFactory(Protocol):
    """Builds the guard called ``name`` for one request."""

    def __call__(self, name: str, ctx: HttpContext) -> Any:
        ...


def session_guard(
    provider: UserProvider[UserT],
    emitter: Emitter,
    config: SessionGuardConfig | None = None,
    cookie_options: dict[str, Any] | None = None,
) -> Callable[[str, HttpContext], SessionGuard[UserT]]:
    """
    Guard factory for session guards.

    Example:
        >>> manager = AuthManager(
        ...     default="web",
        ...     guards={"web": session_guard(provider, emitter)},
        ... )
    """

    def factory(name: str, ctx: HttpContext) -> SessionGuard[UserT]:
        return SessionGuard(
            name,
            ctx,
            emitter,
            provider,
            config,
            cookie_options=cookie_options,
        )

    return factory


# ============================================================================
# Auth Manager
# ============================================================================

class AuthManager(Generic[UserT]):
    """
    Central registry of guards.

    Holds no request state; everything per request lives in the
    ``Authenticator`` it creates.
    """

    def __init__(self, default: str, guards: dict[str, GuardFactory]):
        if default not in guards:
            raise AUTH_GUARD_NOT_CONFIGURED(default, sorted(guards))

        self.default_guard = default
        self._guards = dict(guards)

    @classmethod
    def from_config(
        cls,
        config: AuthConfig,
        provider: UserProvider[UserT],
        emitter: Emitter,
    ) -> AuthManager[UserT]:
        """Build a manager with one session guard per configured guard."""
        guards = {
            name: session_guard(provider, emitter, guard_config, config.cookie_options())
            for name, guard_config in config.guards.items()
        }
        return cls(default=config.default_guard, guards=guards)

    @property
    def guard_names(self) -> list[str]:
        return list(self._guards)

    def make_guard(self, name: str, ctx: HttpContext) -> Any:
        """Instantiate guard ``name`` for ``ctx``."""
        factory = self._guards.get(name)
        if factory is None:
            raise AUTH_GUARD_NOT_CONFIGURED(name, sorted(self._guards))
        return factory(name, ctx)

    def create_authenticator(self, ctx: HttpContext) -> Authenticator:
        return Authenticator(self, ctx)

    def create_authenticator_client(self) -> AuthenticatorClient:
        return AuthenticatorClient(self)


# ============================================================================
# Authenticator
# ============================================================================

class Authenticator:
    """
    Request-scoped access to guards.

    Guard instances are cached per name for the lifetime of the request,
    so the memoized outcome of one guard is shared by every caller.
    """

    def __init__(self, manager: AuthManager, ctx: HttpContext):
        self._manager = manager
        self._ctx = ctx
        self._guards_cache: dict[str, Any] = {}
        self.authenticated_via: Optional[str] = None
        self.authentication_attempted = False

    @property
    def default_guard(self) -> str:
        return self._manager.default_guard

    def use(self, guard: str | None = None) -> Any:
        """Guard instance for ``guard`` (default guard if omitted)."""
        name = guard or self._manager.default_guard

        cached = self._guards_cache.get(name)
        if cached is not None:
            return cached

        logger.debug("instantiating auth guard %s", name)
        instance = self._manager.make_guard(name, self._ctx)
        self._guards_cache[name] = instance
        return instance

    @property
    def user(self) -> Any:
        """User authenticated by the guard that succeeded, if any."""
        return self.use(self.authenticated_via).user if self.authenticated_via else None

    @property
    def is_authenticated(self) -> bool:
        return self.authenticated_via is not None

    async def authenticate(self) -> Any:
        """Authenticate with the default guard."""
        return await self.authenticate_using([self._manager.default_guard])

    async def check(self) -> bool:
        """Silent check with the default guard."""
        guard = self.use()
        result = await guard.check()
        self.authentication_attempted = True
        if result:
            self.authenticated_via = guard.name
        return result

    async def authenticate_using(self, guards: list[str] | None = None) -> Any:
        """
        Try ``guards`` in order, stopping at the first one that succeeds.

        Raises:
            AUTH_UNAUTHORIZED_ACCESS: No guard authenticated the request
        """
        names = guards or [self._manager.default_guard]
        self.authentication_attempted = True

        last_driver = None
        for name in names:
            guard = self.use(name)
            last_driver = getattr(guard, "driver_name", None)
            if await guard.check():
                self.authenticated_via = name
                return guard.get_user_or_fail()

        raise AUTH_UNAUTHORIZED_ACCESS(
            "Unauthorized access",
            guard_driver_name=last_driver,
            guards=names,
        )

    def get_user_or_fail(self) -> Any:
        if self.authenticated_via is None:
            raise AUTH_UNAUTHORIZED_ACCESS(
                "Unauthorized access",
                guard_driver_name=getattr(self.use(), "driver_name", None),
            )
        return self.use(self.authenticated_via).get_user_or_fail()


class AuthenticatorClient:
    """
    Guard access for test clients.

    Guards are built against an isolated context with an empty session,
    so ``authenticate_as_client`` can be called without a real request.
    """

    def __init__(self, manager: AuthManager):
        self._manager = manager
        self._guards_cache: dict[str, Any] = {}

    @property
    def default_guard(self) -> str:
        return self._manager.default_guard

    def use(self, guard: str | None = None) -> Any:
        name = guard or self._manager.default_guard

        cached = self._guards_cache.get(name)
        if cached is not None:
            return cached

        logger.debug("instantiating auth client guard %s", name)
        ctx = HttpContext.create(session=Session())
        instance = self._manager.make_guard(name, ctx)
        self._guards_cache[name] = instance
        return instance
