"""
Portcullis Auth - Authentication faults.

Two kinds of failure leave the guard:

- Unauthorized (``FaultDomain.SECURITY``): an expected outcome. No
  session entry, expired remember token, user no longer exists.
- Configuration (``FaultDomain.CONFIG``): the application is wired
  incorrectly. These are never downgraded to a boolean.
"""

from portcullis.faults import Fault, FaultDomain, Severity


# ============================================================================
# Authentication Faults
# ============================================================================

class AUTH_UNAUTHORIZED_ACCESS(Fault):
    """Request could not be authenticated by a guard."""
    domain = FaultDomain.SECURITY
    code = "AUTH_001"
    severity = Severity.WARN
    message = "Invalid or expired user session"
    public = True
    retryable = False

    def __init__(
        self,
        message: str | None = None,
        *,
        guard_driver_name: str | None = None,
        **metadata,
    ):
        if guard_driver_name:
            metadata["guard_driver_name"] = guard_driver_name
        super().__init__(message=message, metadata=metadata)

    @property
    def guard_driver_name(self) -> str | None:
        return self.metadata.get("guard_driver_name")


class AUTH_SECRET_RELEASED(Fault):
    """A one-time secret was read more than once."""
    domain = FaultDomain.SECURITY
    code = "AUTH_002"
    severity = Severity.ERROR
    message = "Secret value has already been released"
    retryable = False


# ============================================================================
# Configuration Faults
# ============================================================================

class AUTH_SESSION_NOT_CONFIGURED(Fault):
    """The HTTP context carries no session."""
    domain = FaultDomain.CONFIG
    code = "AUTH_CONFIG_001"
    message = (
        "Cannot authenticate user. Install and configure a session "
        "on the HTTP context before using a session guard"
    )

    def __init__(self, guard_name: str | None = None):
        super().__init__(metadata={"guard_name": guard_name} if guard_name else None)


class AUTH_REMEMBER_ME_DISABLED(Fault):
    """Remember me tokens were requested from a guard that does not use them."""
    domain = FaultDomain.CONFIG
    code = "AUTH_CONFIG_002"
    message = (
        "Cannot use \"remember me\" tokens. Enable use_remember_me_tokens "
        "in the guard config first"
    )

    def __init__(self, guard_name: str | None = None):
        super().__init__(metadata={"guard_name": guard_name} if guard_name else None)


class AUTH_GUARD_NOT_CONFIGURED(Fault):
    """Requested guard name is not registered with the auth manager."""
    domain = FaultDomain.CONFIG
    code = "AUTH_CONFIG_003"
    message = "Guard is not configured"

    def __init__(self, guard_name: str, available: list[str] | None = None):
        super().__init__(
            message=f"Guard '{guard_name}' is not configured",
            metadata={"guard_name": guard_name, "available": available or []},
        )

