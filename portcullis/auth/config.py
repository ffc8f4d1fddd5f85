"""
Portcullis Auth - Configuration.

Typed dataclass builders for the auth layer, loadable from the process
environment and ``.env`` files.

Example:
    >>> config = AuthConfig(
    ...     secret_key="a-long-random-string",
    ...     guards={"web": SessionGuardConfig(remember_me_tokens_age=timedelta(days=30))},
    ... )
    >>> config.guard("web").use_remember_me_tokens
    True
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from portcullis.http.cookies import CookieCipher

from .faults import AUTH_GUARD_NOT_CONFIGURED

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class SessionGuardConfig:
    """Session guard configuration."""
    use_remember_me_tokens: bool = True
    remember_me_tokens_age: Optional[timedelta] = timedelta(days=5 * 365)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "use_remember_me_tokens": self.use_remember_me_tokens,
            "remember_me_tokens_age": (
                int(self.remember_me_tokens_age.total_seconds())
                if self.remember_me_tokens_age is not None
                else None
            ),
        }


@dataclass
class AuthConfig:
    """
    Authentication configuration.

    ``secret_key`` has no default: encrypted cookies refuse to work
    without one.
    """
    default_guard: str = "web"
    guards: Dict[str, SessionGuardConfig] = field(
        default_factory=lambda: {"web": SessionGuardConfig()}
    )
    secret_key: Optional[str] = None
    cookie_secure: bool = True
    cookie_samesite: Optional[str] = "Lax"
    cookie_path: str = "/"

    def guard(self, name: Optional[str] = None) -> SessionGuardConfig:
        """Config for guard ``name`` (default guard if omitted)."""
        name = name or self.default_guard
        if name not in self.guards:
            raise AUTH_GUARD_NOT_CONFIGURED(name, sorted(self.guards))
        return self.guards[name]

    def cookie_options(self) -> Dict[str, Any]:
        """Options applied to every remember me cookie."""
        return {
            "secure": self.cookie_secure,
            "samesite": self.cookie_samesite,
            "path": self.cookie_path,
        }

    def build_cipher(self) -> CookieCipher:
        return CookieCipher(self.secret_key)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format (secret is never included)."""
        return {
            "default_guard": self.default_guard,
            "guards": {name: guard.to_dict() for name, guard in self.guards.items()},
            "cookies": {
                "secure": self.cookie_secure,
                "samesite": self.cookie_samesite,
                "path": self.cookie_path,
            },
            "has_secret_key": bool(self.secret_key),
        }

    @classmethod
    def from_env(
        cls,
        prefix: str = "PORTCULLIS_",
        env_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> AuthConfig:
        """
        Load configuration from environment variables.

        Precedence (later overrides earlier): defaults < ``env_file`` <
        process environment.

        Recognized keys (with ``prefix``):
            SECRET_KEY, DEFAULT_GUARD, COOKIE_SECURE, COOKIE_SAMESITE,
            COOKIE_PATH, USE_REMEMBER_ME_TOKENS, REMEMBER_ME_TOKENS_AGE
            (seconds, applies to the default guard)

        Args:
            prefix: Variable name prefix
            env_file: Optional path to a ``.env`` file
            environ: Environment mapping (defaults to ``os.environ``)
        """
        values: Dict[str, str] = {}
        if env_file:
            values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        values.update(environ if environ is not None else os.environ)

        def read(key: str) -> Optional[str]:
            return values.get(f"{prefix}{key}")

        config = cls()

        if read("SECRET_KEY"):
            config.secret_key = read("SECRET_KEY")
        if read("DEFAULT_GUARD"):
            config.default_guard = read("DEFAULT_GUARD")
        if read("COOKIE_SECURE") is not None:
            config.cookie_secure = read("COOKIE_SECURE").strip().lower() in _TRUE_VALUES
        if read("COOKIE_SAMESITE") is not None:
            config.cookie_samesite = read("COOKIE_SAMESITE") or None
        if read("COOKIE_PATH"):
            config.cookie_path = read("COOKIE_PATH")

        guard = SessionGuardConfig()
        if read("USE_REMEMBER_ME_TOKENS") is not None:
            guard.use_remember_me_tokens = (
                read("USE_REMEMBER_ME_TOKENS").strip().lower() in _TRUE_VALUES
            )
        if read("REMEMBER_ME_TOKENS_AGE"):
            guard.remember_me_tokens_age = timedelta(seconds=int(read("REMEMBER_ME_TOKENS_AGE")))
        config.guards = {config.default_guard: guard}

        return config
