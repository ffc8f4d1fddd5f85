"""
Portcullis Auth - User providers.

A user provider is the guard's only window onto persistent users and
remember me tokens. The guard never sees storage types; it talks to the
``UserProvider`` protocol and receives ``GuardUser`` wrappers exposing
the id and the original domain object.

Providers:
- UserProvider: Protocol every provider implements
- MemoryUserProvider: Dev/testing provider keeping users and tokens in memory
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone, timedelta
from typing import Any, Callable, Generic, Protocol, TypeVar

from .tokens import RememberMeToken, Secret

UserT = TypeVar("UserT")

logger = logging.getLogger("portcullis.auth.providers")


# ============================================================================
# Protocols
# ============================================================================

class GuardUser(Generic[UserT]):
    """
    Guard-facing view of a domain user.

    Wraps the original user object and knows how to read its id.
    """

    __slots__ = ("_user", "_id_attribute")

    def __init__(self, user: UserT, id_attribute: str = "id"):
        self._user = user
        self._id_attribute = id_attribute

    def get_id(self) -> str | int:
        user_id = getattr(self._user, self._id_attribute, None)
        if user_id is None:
            raise ValueError(
                f"Cannot use \"{type(self._user).__name__}\" for session "
                f"authentication: the value of \"{self._id_attribute}\" is undefined"
            )
        return user_id

    def get_original(self) -> UserT:
        return self._user

    def __repr__(self) -> str:
        return f"GuardUser({type(self._user).__name__}, id={getattr(self._user, self._id_attribute, None)!r})"


class UserProvider(Protocol[UserT]):
    """
    User lookup and remember me token persistence used by SessionGuard.

    All I/O methods are async.
    """

    async def create_user_for_guard(self, user: UserT) -> GuardUser[UserT]:
        """Wrap a domain user for the guard."""
        ...

    async def find_by_id(self, identifier: str | int) -> GuardUser[UserT] | None:
        """Find a user by id, None if it does not exist."""
        ...

    async def create_remember_token(
        self, user: UserT, expires_in: timedelta | None
    ) -> RememberMeToken:
        """Create a remember me token whose value can be read once."""
        ...

    async def verify_remember_token(self, token: Secret) -> RememberMeToken | None:
        """Verify a cookie payload, None when invalid or expired."""
        ...

    async def recycle_remember_token(
        self, user: UserT, identifier: str, expires_in: timedelta | None
    ) -> RememberMeToken | None:
        """
        Invalidate the token behind ``identifier`` and mint a replacement.

        Returns None when the token was already gone, so only one of
        several concurrent replays of the same cookie gets a new token.
        """
        ...

    async def delete_remember_token(self, user: UserT, identifier: str) -> int:
        """Delete a remember me token, returns the number of tokens removed."""
        ...


# ============================================================================
# Memory Provider (for development and testing)
# ============================================================================

class MemoryUserProvider(Generic[UserT]):
    """
    In-memory user provider for development/testing.

    Users are indexed by the string form of their id attribute so that
    ids read back from a serialized session ("42") and ids set in code
    (42) resolve to the same user.

    Example:
        >>> provider = MemoryUserProvider()
        >>> provider.add(User(id=42, email="ada@example.com"))
        >>> guard_user = await provider.find_by_id(42)
        >>> guard_user.get_original().email
        'ada@example.com'
    """

    def __init__(
        self,
        users: list[UserT] | None = None,
        id_attribute: str = "id",
        token_size: int = 40,
        clock: Callable[[], datetime] | None = None,
    ):
        self.id_attribute = id_attribute
        self.token_size = token_size
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._users: dict[str, UserT] = {}
        self._tokens: dict[str, RememberMeToken] = {}
        self._lock = asyncio.Lock()

        for user in users or []:
            self.add(user)

    @staticmethod
    def _key(identifier: Any) -> str:
        return str(identifier)

    def _id_of(self, user: UserT) -> str | int:
        return GuardUser(user, self.id_attribute).get_id()

    def add(self, user: UserT) -> UserT:
        """Register a user."""
        self._users[self._key(self._id_of(user))] = user
        return user

    def remove(self, identifier: str | int) -> bool:
        """Remove a user (their tokens stay until they fail verification)."""
        return self._users.pop(self._key(identifier), None) is not None

    def tokens_for(self, user: UserT) -> list[RememberMeToken]:
        """List remember me tokens owned by ``user``."""
        owner = self._key(self._id_of(user))
        return [t for t in self._tokens.values() if self._key(t.tokenable_id) == owner]

    # ------------------------------------------------------------------------
    # UserProvider
    # ------------------------------------------------------------------------

    async def create_user_for_guard(self, user: UserT) -> GuardUser[UserT]:
        guard_user = GuardUser(user, self.id_attribute)
        # Fail early for users without an id
        guard_user.get_id()
        return guard_user

    async def find_by_id(self, identifier: str | int) -> GuardUser[UserT] | None:
        user = self._users.get(self._key(identifier))
        if user is None:
            return None
        return GuardUser(user, self.id_attribute)

    async def create_remember_token(
        self, user: UserT, expires_in: timedelta | None
    ) -> RememberMeToken:
        transient = RememberMeToken.create_transient(
            self._id_of(user), size=self.token_size, expires_in=expires_in,
        )
        token = RememberMeToken.from_transient(transient)

        async with self._lock:
            # Stored copy never carries the cookie payload
            self._tokens[token.identifier] = RememberMeToken(
                identifier=token.identifier,
                tokenable_id=token.tokenable_id,
                hash=token.hash,
                created_at=token.created_at,
                updated_at=token.updated_at,
                expires_at=token.expires_at,
            )

        logger.debug("Created remember me token %s", token.identifier)
        return token

    async def verify_remember_token(self, token: Secret) -> RememberMeToken | None:
        decoded = RememberMeToken.decode(token.release())
        if decoded is None:
            return None

        identifier, secret = decoded
        stored = self._tokens.get(identifier)
        if stored is None:
            return None

        if stored.is_expired(self._clock()) or not stored.verify(secret):
            return None

        return stored

    async def recycle_remember_token(
        self, user: UserT, identifier: str, expires_in: timedelta | None
    ) -> RememberMeToken | None:
        if not await self.delete_remember_token(user, identifier):
            logger.debug("Refused to recycle missing remember me token %s", identifier)
            return None
        return await self.create_remember_token(user, expires_in)

    async def delete_remember_token(self, user: UserT, identifier: str) -> int:
        owner = self._key(self._id_of(user))
        async with self._lock:
            stored = self._tokens.get(identifier)
            if stored is None or self._key(stored.tokenable_id) != owner:
                return 0
            del self._tokens[identifier]

        logger.debug("Deleted remember me token %s", identifier)
        return 1
