"""
Portcullis Auth - Session Guard

Decides, once per request, whether the caller is a logged-in user.

Two credential sources are consulted in order:

1. The user id stored under ``auth_<guard>`` in the request's session.
2. The encrypted ``remember_<guard>`` cookie carrying a remember me
   token. A successful use opens a fresh session and rotates the token,
   so a stolen cookie stops working as soon as either party uses it.

The outcome is memoized on the guard. Asking again in the same request
returns the cached user or raises ``AUTH_UNAUTHORIZED_ACCESS`` without
touching the session or the provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Optional

from portcullis.events import (
    AUTHENTICATION_ATTEMPTED,
    AUTHENTICATION_FAILED,
    AUTHENTICATION_SUCCEEDED,
    LOGGED_OUT,
    LOGIN_ATTEMPTED,
    LOGIN_SUCCEEDED,
    Emitter,
)
from portcullis.sessions.core import hash_session_id

from .config import SessionGuardConfig
from .faults import (
    AUTH_REMEMBER_ME_DISABLED,
    AUTH_SESSION_NOT_CONFIGURED,
    AUTH_UNAUTHORIZED_ACCESS,
)
from .providers import UserProvider, UserT
from .tokens import RememberMeToken, Secret

if TYPE_CHECKING:
    from portcullis.http import HttpContext
    from portcullis.sessions import SessionStore


# ============================================================================
# Guard State
# ============================================================================

class GuardStatus(str, Enum):
    """
    Authentication state of a guard within one request.

    UNATTEMPTED -> ATTEMPTING -> AUTHENTICATED | UNAUTHENTICATED | NO_CREDENTIALS
    """

    UNATTEMPTED = "unattempted"
    ATTEMPTING = "attempting"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    NO_CREDENTIALS = "no_credentials"


@dataclass(frozen=True)
class GuardContext(Generic[UserT]):
    """Everything a guard is built from. Never changes during a request."""
    name: str
    ctx: HttpContext
    emitter: Emitter
    provider: UserProvider[UserT]
    config: SessionGuardConfig = field(default_factory=SessionGuardConfig)
    cookie_options: dict[str, Any] = field(default_factory=dict)


@dataclass
class GuardState(Generic[UserT]):
    """Mutable per-request authentication state."""
    status: GuardStatus = GuardStatus.UNATTEMPTED
    authentication_attempted: bool = False
    is_authenticated: bool = False
    is_logged_out: bool = False
    via_remember: bool = False
    attempted_via_remember: bool = False
    user: Optional[UserT] = None

    # Identifier (not the secret) of a remember me token issued during
    # this request, so logout can revoke it
    issued_token_identifier: Optional[str] = field(default=None, repr=False)


# ============================================================================
# SessionGuard
# ============================================================================

class SessionGuard(Generic[UserT]):
    """
    Session based authentication guard.

    One instance serves exactly one (request, guard name) pair.

    Example:
        >>> guard = SessionGuard("web", ctx, emitter, provider)
        >>> if await guard.check():
        ...     print(guard.user)
    """

    driver_name = "session"

    def __init__(
        self,
        name: str,
        ctx: HttpContext,
        emitter: Emitter,
        user_provider: UserProvider[UserT],
        config: SessionGuardConfig | None = None,
        *,
        cookie_options: dict[str, Any] | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize session guard.

        Args:
            name: Guard name, used to namespace session and cookie keys
            ctx: HTTP context of the current request
            emitter: Event sink
            user_provider: Provider used to look up users and tokens
            config: Guard configuration
            cookie_options: Extra options for the remember me cookie
                (secure, samesite, path, domain)
            logger: Optional logger
        """
        self._context = GuardContext(
            name=name,
            ctx=ctx,
            emitter=emitter,
            provider=user_provider,
            config=config or SessionGuardConfig(),
            cookie_options=dict(cookie_options or {}),
        )
        self._state: GuardState[UserT] = GuardState()
        self.logger = logger or logging.getLogger("portcullis.auth")

    # ========================================================================
    # State
    # ========================================================================

    @property
    def name(self) -> str:
        return self._context.name

    @property
    def config(self) -> SessionGuardConfig:
        return self._context.config

    @property
    def session_key_name(self) -> str:
        """Session key holding the logged-in user id."""
        return f"auth_{self._context.name}"

    @property
    def remember_me_key_name(self) -> str:
        """Cookie holding the remember me token."""
        return f"remember_{self._context.name}"

    @property
    def status(self) -> GuardStatus:
        return self._state.status

    @property
    def authentication_attempted(self) -> bool:
        return self._state.authentication_attempted

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def is_logged_out(self) -> bool:
        return self._state.is_logged_out

    @property
    def via_remember(self) -> bool:
        return self._state.via_remember

    @property
    def attempted_via_remember(self) -> bool:
        return self._state.attempted_via_remember

    @property
    def user(self) -> Optional[UserT]:
        """
        Authenticated user, only set after ``authenticate``, ``check``
        or ``login``. Use ``get_user_or_fail`` to require it.
        """
        return self._state.user

    # ========================================================================
    # Internals
    # ========================================================================

    def _get_session(self) -> SessionStore:
        session = getattr(self._context.ctx, "session", None)
        if session is None:
            raise AUTH_SESSION_NOT_CONFIGURED(self._context.name)
        return session

    def _emit(self, event_name: str, **payload: Any) -> None:
        payload.setdefault("ctx", self._context.ctx)
        payload["guard_name"] = self._context.name
        self._context.emitter.emit(event_name, payload)

    def _unauthorized(self) -> AUTH_UNAUTHORIZED_ACCESS:
        return AUTH_UNAUTHORIZED_ACCESS(
            "Invalid or expired user session",
            guard_driver_name=self.driver_name,
        )

    def _authentication_failed(self, session_id: str) -> AUTH_UNAUTHORIZED_ACCESS:
        """
        Emit the failure event and return the fault ending the attempt.

        Callers raise the returned fault, so every failure shows up
        exactly once on the event stream.
        """
        error = self._unauthorized()
        self._state.status = GuardStatus.UNAUTHENTICATED

        self.logger.warning(
            "Guard %s rejected request (session %s): %s",
            self._context.name, hash_session_id(session_id), error.code,
        )
        self._emit(
            AUTHENTICATION_FAILED,
            session_id=session_id,
            error=error,
        )
        return error

    def _authentication_succeeded(
        self,
        session_id: str,
        user: UserT,
        remember_me_token: RememberMeToken | None = None,
    ) -> None:
        self._mark_authenticated(user, via_remember=remember_me_token is not None)

        self.logger.debug(
            "Guard %s authenticated request (session %s, via_remember=%s)",
            self._context.name, hash_session_id(session_id), self._state.via_remember,
        )
        self._emit(
            AUTHENTICATION_SUCCEEDED,
            session_id=session_id,
            user=user,
            remember_me_token=remember_me_token,
        )

    def _mark_authenticated(self, user: UserT, via_remember: bool) -> None:
        self._state.user = user
        self._state.is_authenticated = True
        self._state.is_logged_out = False
        self._state.via_remember = via_remember
        self._state.status = GuardStatus.AUTHENTICATED

    def _create_session_for_user(self, user_id: Any) -> None:
        session = self._get_session()
        session.put(self.session_key_name, user_id)
        session.regenerate()

    def _remember_me_max_age(self) -> Optional[int]:
        age = self._context.config.remember_me_tokens_age
        return int(age.total_seconds()) if age is not None else None

    def _remember_me_expires_in(self) -> Optional[timedelta]:
        return self._context.config.remember_me_tokens_age

    def _create_remember_me_cookie(self, value: str) -> None:
        options = dict(self._context.cookie_options)
        options["httponly"] = True
        options.setdefault("max_age", self._remember_me_max_age())
        self._context.ctx.response.encrypted_cookie(self.remember_me_key_name, value, **options)

    async def _authenticate_via_id(self, user_id: Any, session_id: str) -> UserT:
        """
        Authenticate using the user id read from the session store.

        - Check the user still exists with the provider
        - If not, fail
        - Otherwise mark the request as authenticated
        """
        provider_user = await self._context.provider.find_by_id(user_id)
        if provider_user is None:
            raise self._authentication_failed(session_id)

        self._authentication_succeeded(session_id, provider_user.get_original())
        return self._state.user

    async def _authenticate_via_remember_cookie(
        self, remember_me_cookie: str, session_id: str
    ) -> UserT:
        """
        Authenticate using the remember me cookie.

        Recycles the token, then opens a fresh session for the user, so
        the cookie just presented can never be used again. When another
        request recycled the same token first, this one fails.
        """
        provider = self._context.provider

        token = await provider.verify_remember_token(Secret(remember_me_cookie))
        if token is None:
            raise self._authentication_failed(session_id)

        provider_user = await provider.find_by_id(token.tokenable_id)
        if provider_user is None:
            raise self._authentication_failed(session_id)

        recycled = await provider.recycle_remember_token(
            provider_user.get_original(), token.identifier, self._remember_me_expires_in(),
        )
        if recycled is None:
            raise self._authentication_failed(session_id)

        self._create_session_for_user(provider_user.get_id())
        self._authentication_succeeded(session_id, provider_user.get_original(), token)

        self._state.issued_token_identifier = recycled.identifier
        self._create_remember_me_cookie(recycled.value.release())
        return self._state.user

    # ========================================================================
    # Authentication
    # ========================================================================

    def get_user_or_fail(self) -> UserT:
        """
        Return the authenticated user.

        Raises:
            AUTH_UNAUTHORIZED_ACCESS: Request is not authenticated
        """
        if not self._state.is_authenticated or self._state.user is None:
            raise self._unauthorized()

        return self._state.user

    async def authenticate(self) -> Optional[UserT]:
        """
        Authenticate the current request.

        Returns:
            The user, or None when the request carried no credentials at
            all (status ``NO_CREDENTIALS``)

        Raises:
            AUTH_UNAUTHORIZED_ACCESS: Credentials were present but invalid,
                or authentication was already attempted without success
            AUTH_SESSION_NOT_CONFIGURED: No session on the context
            COOKIE_KEY_MISSING: A remember me cookie arrived but no cookie
                cipher is configured
        """
        if self._state.authentication_attempted:
            return self.get_user_or_fail()

        session = self._get_session()
        session_id = session.session_id

        # Credentials are read before the attempt is marked, so
        # configuration faults surface on every call
        auth_user_id = session.get(self.session_key_name)
        remember_me_cookie = None
        if auth_user_id is None and self._context.config.use_remember_me_tokens:
            remember_me_cookie = self._context.ctx.request.encrypted_cookie(
                self.remember_me_key_name
            )

        self._state.authentication_attempted = True
        self._state.status = GuardStatus.ATTEMPTING
        self._emit(AUTHENTICATION_ATTEMPTED, session_id=session_id)

        if auth_user_id is not None:
            return await self._authenticate_via_id(auth_user_id, session_id)

        if remember_me_cookie:
            self._state.attempted_via_remember = True
            return await self._authenticate_via_remember_cookie(
                remember_me_cookie, session_id
            )

        # Guest request: nothing to verify, nothing failed
        self._state.status = GuardStatus.NO_CREDENTIALS
        self.logger.debug(
            "Guard %s found no credentials (session %s)",
            self._context.name, hash_session_id(session_id),
        )
        return None

    async def check(self) -> bool:
        """
        Silently check whether the request is authenticated.

        Only ``AUTH_UNAUTHORIZED_ACCESS`` is turned into ``False``;
        configuration faults propagate.
        """
        try:
            await self.authenticate()
        except AUTH_UNAUTHORIZED_ACCESS:
            return False

        return self._state.is_authenticated

    async def authenticate_as_client(self, user: UserT) -> dict[str, Any]:
        """
        Session values a client must send to be logged in as ``user``.

        Nothing is written; the result is meant to be injected into a
        simulated session.
        """
        provider_user = await self._context.provider.create_user_for_guard(user)
        user_id = provider_user.get_id()

        return {
            "session": {
                self.session_key_name: user_id,
            },
        }

    # ========================================================================
    # Login / Logout
    # ========================================================================

    async def login(self, user: UserT, remember: bool = False) -> UserT:
        """
        Log ``user`` in for the current and following requests.

        Args:
            user: Domain user
            remember: Also issue a remember me cookie

        Raises:
            AUTH_SESSION_NOT_CONFIGURED: No session on the context
            AUTH_REMEMBER_ME_DISABLED: ``remember`` on a guard without
                remember me tokens
        """
        session = self._get_session()
        if remember and not self._context.config.use_remember_me_tokens:
            raise AUTH_REMEMBER_ME_DISABLED(self._context.name)

        provider = self._context.provider
        provider_user = await provider.create_user_for_guard(user)
        self._emit(LOGIN_ATTEMPTED, user=user)

        user_id = provider_user.get_id()
        session_id = session.session_id

        token = None
        if remember:
            token = await provider.create_remember_token(
                provider_user.get_original(), self._remember_me_expires_in(),
            )
            self._state.issued_token_identifier = token.identifier
            self._create_remember_me_cookie(token.value.release())

        self._create_session_for_user(user_id)
        self._mark_authenticated(provider_user.get_original(), via_remember=False)

        self.logger.debug(
            "Guard %s logged in user %s (remember=%s)", self._context.name, user_id, remember,
        )
        self._emit(
            LOGIN_SUCCEEDED,
            session_id=session_id,
            user=provider_user.get_original(),
            remember_me_token=token,
        )
        return provider_user.get_original()

    async def login_via_id(self, user_id: Any, remember: bool = False) -> UserT:
        """
        Log in the user with ``user_id``.

        Raises:
            AUTH_UNAUTHORIZED_ACCESS: No user with this id
        """
        provider_user = await self._context.provider.find_by_id(user_id)
        if provider_user is None:
            raise AUTH_UNAUTHORIZED_ACCESS(
                "Cannot login: user not found",
                guard_driver_name=self.driver_name,
            )

        return await self.login(provider_user.get_original(), remember)

    async def logout(self) -> None:
        """
        Log the user out.

        Forgets the session entry, clears the remember me cookie, revokes
        the remember me token presented or issued in this request, and
        regenerates the session.
        """
        session = self._get_session()
        session_id = session.session_id
        ctx = self._context.ctx
        provider = self._context.provider
        user = self._state.user

        remember_me_cookie = ctx.request.encrypted_cookie(self.remember_me_key_name)

        session.forget(self.session_key_name)
        ctx.response.clear_cookie(
            self.remember_me_key_name,
            path=self._context.cookie_options.get("path", "/"),
            domain=self._context.cookie_options.get("domain"),
        )

        if user is not None and self._context.config.use_remember_me_tokens:
            if self._state.issued_token_identifier:
                await provider.delete_remember_token(user, self._state.issued_token_identifier)
            elif remember_me_cookie:
                token = await provider.verify_remember_token(Secret(remember_me_cookie))
                if token is not None:
                    await provider.delete_remember_token(user, token.identifier)

        self._state.user = None
        self._state.is_authenticated = False
        self._state.via_remember = False
        self._state.is_logged_out = True
        self._state.issued_token_identifier = None
        self._state.status = GuardStatus.UNAUTHENTICATED

        self.logger.debug(
            "Guard %s logged out (session %s)",
            self._context.name, hash_session_id(session_id),
        )
        self._emit(LOGGED_OUT, session_id=session_id, user=user)
        session.regenerate()
