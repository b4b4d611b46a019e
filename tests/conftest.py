"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It seeds the environment before any module imports the settings.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-123")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable

import pytest
from jose import jwt

TEST_SECRET = os.environ["AUTH_JWT_SECRET"]


@pytest.fixture(autouse=True)
def _reset_cached_admission_state():
    """Give every test a fresh limiter, resolver and rule table."""
    import admission.core.auth as auth_module
    import admission.core.rate_limit as rate_limit_module

    rate_limit_module._limiter = None
    rate_limit_module._limiter_config = None
    auth_module._resolver = None
    auth_module._resolver_config = None
    auth_module._rule_table = None
    auth_module._rule_table_config = None
    yield


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Sign a token the way the account service does."""

    def _make(user_id: Any = 1, role: str | None = "user", secret: str = TEST_SECRET, **claims: Any) -> str:
        payload: dict[str, Any] = {"userId": user_id, "email": f"user{user_id}@example.com", **claims}
        if role is not None:
            payload["role"] = role
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token) -> Callable[..., dict[str, str]]:
    def _headers(user_id: Any = 1, role: str = "user") -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id=user_id, role=role)}"}

    return _headers
