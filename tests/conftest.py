"""
Shared fixtures for the BookNView test suite.

Settings are always built explicitly (never from the process environment
or a stray .env file) so every test sees the same configuration.
"""

from typing import Any, Callable

import pytest

from api.src.config import Settings, clear_settings_cache


TEST_JWT_SECRET = "test-secret-key-do-not-use-in-production-0123"


def build_settings(**overrides: Any) -> Settings:
    """
    Build settings for tests.

    Args:
        **overrides: Field values replacing the test defaults

    Returns:
        Settings isolated from .env files
    """
    values = {
        "environment": "test",
        "jwt_secret": TEST_JWT_SECRET,
        "password_bcrypt_rounds": 4,
        "cleanup_enabled": False,
        "tracing_enabled": False,
        "log_level": "WARNING",
        "log_format": "text",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Factory fixture building settings with per-test overrides."""
    return build_settings


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Drop the cached process settings around every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
