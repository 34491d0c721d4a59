"""Unit tests for core/config.py -- Settings validation.

Covers:
- Production mode refuses to start without SECRET_KEY
- Dev mode generates a random key
- Short keys and non-positive session TTLs are rejected
- Defaults: 24h session, cookie name, insecure cookies outside production
"""

import pytest

from core.config import Settings


def test_production_requires_secret_key() -> None:
    with pytest.raises(ValueError, match="SECRET_KEY is required"):
        Settings(_env_file=None, debug=False, secret_key="")


def test_debug_generates_secret_key() -> None:
    settings = Settings(_env_file=None, debug=True, secret_key="")
    assert len(settings.secret_key) == 64
    assert settings.secret_key != Settings(_env_file=None, debug=True, secret_key="").secret_key


def test_short_secret_key_rejected() -> None:
    with pytest.raises(ValueError, match="at least 32"):
        Settings(_env_file=None, debug=True, secret_key="too-short")


def test_non_positive_ttl_rejected() -> None:
    with pytest.raises(ValueError, match="SESSION_TTL_SECONDS"):
        Settings(_env_file=None, debug=True, session_ttl_seconds=0)


def test_defaults() -> None:
    settings = Settings(_env_file=None, debug=True, secret_key="k" * 32)
    assert settings.session_ttl_seconds == 86400
    assert settings.session_cookie_name == "devdash_session"
    assert settings.secure_cookies is False
