"""Tests for core/config.py."""

import pytest
from pydantic import ValidationError

from festauth.core.config import DEFAULT_JWT_SECRET, Settings


def test_default_settings():
    s = Settings(_env_file=None)
    assert s.app_port == 8000
    assert s.jwt_algorithm == "HS256"
    assert s.auth_cookie_name == "authToken"
    assert s.session_ttl_days == 7
    assert s.impersonation_ttl_hours == 2
    assert s.lockout_threshold == 5
    assert s.password_min_length == 8
    assert s.password_reset_ttl_minutes == 10


def test_cookie_secure_only_in_production():
    assert Settings(environment="development").cookie_secure is False
    assert Settings(environment="production").cookie_secure is True


def test_sync_db_url():
    s = Settings(database_url="postgresql+asyncpg://user:pw@localhost/db")
    assert "+asyncpg" not in s.sync_database_url
    assert "postgresql" in s.sync_database_url


def test_default_jwt_secret_refused_in_production():
    with pytest.raises(ValidationError):
        Settings(environment="production", jwt_secret_key=DEFAULT_JWT_SECRET)
    # Tolerated outside production
    assert Settings(jwt_secret_key=DEFAULT_JWT_SECRET).jwt_secret_key == DEFAULT_JWT_SECRET
