"""
Portcullis Auth - session guard authentication.

Components:
- SessionGuard: Per-request authentication state machine
- AuthManager / Authenticator: Named guards, cached per request
- UserProvider / MemoryUserProvider: User and remember token lookup
- RememberMeToken / Secret: Rotating long-lived credentials
- Faults: Unauthorized and configuration faults
"""

from .config import AuthConfig, SessionGuardConfig
from .faults import (
    AUTH_GUARD_NOT_CONFIGURED,
    AUTH_REMEMBER_ME_DISABLED,
    AUTH_SECRET_RELEASED,
    AUTH_SESSION_NOT_CONFIGURED,
    AUTH_UNAUTHORIZED_ACCESS,
)
from .manager import (
    AuthManager,
    Authenticator,
    AuthenticatorClient,
    session_guard,
)
from .providers import GuardUser, MemoryUserProvider, UserProvider
from .session_guard import GuardContext, GuardState, GuardStatus, SessionGuard
from .tokens import RememberMeToken, Secret, TransientToken

__all__ = [
    # Config
    "AuthConfig",
    "SessionGuardConfig",
    # Faults
    "AUTH_GUARD_NOT_CONFIGURED",
    "AUTH_REMEMBER_ME_DISABLED",
    "AUTH_SECRET_RELEASED",
    "AUTH_SESSION_NOT_CONFIGURED",
    "AUTH_UNAUTHORIZED_ACCESS",
    # Manager
    "AuthManager",
    "Authenticator",
    "AuthenticatorClient",
    "session_guard",
    # Providers
    "GuardUser",
    "MemoryUserProvider",
    "UserProvider",
    # Guard
    "GuardContext",
    "GuardState",
    "GuardStatus",
    "SessionGuard",
    # Tokens
    "RememberMeToken",
    "Secret",
    "TransientToken",
]
