"""
Portcullis - session guard authentication for async web handlers.

Decides per request whether the caller is a logged-in user, from the
server-side session or a rotating "remember me" cookie.
"""

from .auth import (
    AUTH_SESSION_NOT_CONFIGURED,
    AUTH_UNAUTHORIZED_ACCESS,
    AuthConfig,
    AuthManager,
    Authenticator,
    GuardStatus,
    MemoryUserProvider,
    SessionGuard,
    SessionGuardConfig,
)
from .events import Emitter
from .faults import Fault, FaultDomain, Severity
from .http import CookieCipher, HttpContext
from .sessions import Session

__version__ = "0.1.0"

__all__ = [
    "AUTH_SESSION_NOT_CONFIGURED",
    "AUTH_UNAUTHORIZED_ACCESS",
    "AuthConfig",
    "AuthManager",
    "Authenticator",
    "CookieCipher",
    "Emitter",
    "Fault",
    "FaultDomain",
    "GuardStatus",
    "HttpContext",
    "MemoryUserProvider",
    "Session",
    "SessionGuard",
    "SessionGuardConfig",
    "Severity",
    "__version__",
]
