"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from admission.core.errors import (
    AppError,
    AuthenticationAppError,
    AuthorizationAppError,
    RateLimitAppError,
    RateLimitStoreError,
    ValidationAppError,
)
from admission.core.exception_handlers import setup_exception_handlers, status_code_for


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(
                code="rate_limit_unknown_backend",
                message="Unknown rate limit backend"
            )

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "rate_limit_unknown_backend"
        assert data["error"]["message"] == "Unknown rate limit backend"
        assert "request_id" in data["error"]

    def test_authentication_error_returns_401_with_challenge(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify AuthenticationAppError returns HTTP 401 with a Bearer challenge."""
        @app_with_handlers.get("/test-auth")
        async def test_endpoint():
            raise AuthenticationAppError(
                code="UNAUTHENTICATED",
                message="Not authenticated"
            )

        response = client.get("/test-auth")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"]["code"] == "UNAUTHENTICATED"

    def test_authorization_error_returns_403(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify AuthorizationAppError returns HTTP 403 Forbidden."""
        @app_with_handlers.get("/test-forbidden")
        async def test_endpoint():
            raise AuthorizationAppError(code="FORBIDDEN", message="Not authorized")

        response = client.get("/test-forbidden")

        assert response.status_code == 403
        assert "WWW-Authenticate" not in response.headers

    def test_rate_limit_error_returns_429_with_retry_after(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify RateLimitAppError returns HTTP 429 and Retry-After."""
        @app_with_handlers.get("/test-rate-limit")
        async def test_endpoint():
            raise RateLimitAppError(
                code="RATE_LIMIT_EXCEEDED",
                message="Rate limit exceeded",
                details={"retryAfter": 42, "limit": 5, "window": 60},
            )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.json()["error"]["details"]["limit"] == 5

    def test_error_headers_are_forwarded(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limit-headers")
        async def test_endpoint():
            raise RateLimitAppError(
                code="RATE_LIMIT_EXCEEDED",
                message="Rate limit exceeded",
                details={"retryAfter": 7},
                headers={"X-RateLimit-Remaining": "0"},
            )

        response = client.get("/test-rate-limit-headers")

        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["Retry-After"] == "7"

    def test_error_response_format_is_consistent(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify error responses have consistent JSON structure."""
        @app_with_handlers.get("/test-format")
        async def test_endpoint():
            raise ValidationAppError(code="test", message="test")

        response = client.get("/test-format")
        data = response.json()

        # Required fields always present
        assert "error" in data
        assert "code" in data["error"]
        assert "message" in data["error"]
        assert "request_id" in data["error"]
        assert "details" not in data["error"]


@pytest.mark.parametrize(
    "error_type, expected",
    [
        (ValidationAppError, 400),
        (AuthenticationAppError, 401),
        (AuthorizationAppError, 403),
        (RateLimitAppError, 429),
        (RateLimitStoreError, 503),
        (AppError, 400),
    ],
)
def test_status_code_mapping(error_type, expected: int) -> None:
    assert status_code_for(error_type(code="c", message="m")) == expected


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        """Verify fallback exception handler is registered."""
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        """Verify general_exception_handler returns correct structure."""
        from admission.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: redis connection failed")
        response = asyncio.run(general_exception_handler(request, exc))

        response_body = response.body if isinstance(response.body, bytes) else bytes(response.body)
        data = json.loads(response_body.decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        # Original error message should NOT be in response
        assert "redis connection" not in data["error"]["message"]
        assert "request_id" in data["error"]

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        from admission.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_body = response.body if isinstance(response.body, bytes) else bytes(response.body)
        response_text = response_body.decode()
        # No traceback indicators
        assert "Traceback" not in response_text
        assert "File \"" not in response_text
        assert "ValueError" not in response_text


def test_multiple_handler_setups_does_not_fail():
    """Verify calling setup_exception_handlers multiple times is safe."""
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers
