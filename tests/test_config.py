"""
Auth configuration builders and environment loading.
"""

from datetime import timedelta

import pytest

from portcullis.auth import AUTH_GUARD_NOT_CONFIGURED, AuthConfig, SessionGuardConfig
from portcullis.http import COOKIE_KEY_MISSING, CookieCipher


class TestSessionGuardConfig:

    def test_defaults(self):
        config = SessionGuardConfig()
        assert config.use_remember_me_tokens is True
        assert config.remember_me_tokens_age == timedelta(days=5 * 365)

    def test_to_dict(self):
        config = SessionGuardConfig(remember_me_tokens_age=timedelta(hours=1))
        assert config.to_dict() == {"use_remember_me_tokens": True, "remember_me_tokens_age": 3600}


class TestAuthConfig:

    def test_default_secret_is_none(self):
        assert AuthConfig().secret_key is None

    def test_cipher_requires_secret(self):
        with pytest.raises(COOKIE_KEY_MISSING):
            AuthConfig().build_cipher()
        assert isinstance(AuthConfig(secret_key="k").build_cipher(), CookieCipher)

    def test_guard_lookup(self):
        config = AuthConfig()
        assert config.guard() is config.guards["web"]
        with pytest.raises(AUTH_GUARD_NOT_CONFIGURED):
            config.guard("api")

    def test_to_dict_hides_secret(self):
        data = AuthConfig(secret_key="super-secret").to_dict()
        assert data["has_secret_key"] is True
        assert "super-secret" not in str(data)
        assert data["default_guard"] == "web"

    def test_from_env(self):
        config = AuthConfig.from_env(environ={
            "PORTCULLIS_SECRET_KEY": "from-env",
            "PORTCULLIS_DEFAULT_GUARD": "admin",
            "PORTCULLIS_COOKIE_SECURE": "false",
            "PORTCULLIS_COOKIE_SAMESITE": "Strict",
            "PORTCULLIS_USE_REMEMBER_ME_TOKENS": "no",
            "PORTCULLIS_REMEMBER_ME_TOKENS_AGE": "600",
            "UNRELATED": "x",
        })

        assert config.secret_key == "from-env"
        assert config.default_guard == "admin"
        assert config.cookie_secure is False
        assert config.cookie_samesite == "Strict"
        assert config.guard().use_remember_me_tokens is False
        assert config.guard().remember_me_tokens_age == timedelta(seconds=600)

    def test_from_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "APP_SECRET_KEY=from-file\n"
            "APP_COOKIE_PATH=/app\n"
        )

        config = AuthConfig.from_env(
            prefix="APP_",
            env_file=str(env_file),
            environ={"APP_COOKIE_PATH": "/override"},
        )

        assert config.secret_key == "from-file"
        assert config.cookie_path == "/override"

    def test_from_env_defaults(self):
        config = AuthConfig.from_env(environ={})
        assert config.secret_key is None
        assert config.cookie_secure is True
        assert list(config.guards) == ["web"]
