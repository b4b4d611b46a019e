"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from admission.core.logging import (
    JsonFormatter,
    RequestContextFilter,
    SensitiveDataFilter,
    clear_request_context,
    set_client_type,
    set_request_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestContextFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_credentials():
    """Ensure tokens and secrets are redacted."""

    logger, stream = _capture("test_redaction")

    logger.info(
        "auth_event",
        extra={
            "token": "eyJhbGciOiJIUzI1NiJ9.e30.sig",
            "jwt_secret": "super-secret",
            "password_hash": "$2b$10$hash",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "eyJhbGciOiJIUzI1NiJ9" not in output
    assert "super-secret" not in output
    assert "$2b$10$hash" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_bearer_values():
    """Bearer header values are redacted under any key."""

    logger, stream = _capture("test_bearer")

    logger.info("header_event", extra={"raw_header": "Bearer abc.def.ghi"})

    output = stream.getvalue()

    assert "abc.def.ghi" not in output
    assert "[REDACTED]" in output


def test_sensitive_filter_allows_safe_fields():
    """Verify safe fields pass through unmodified."""

    logger, stream = _capture("test_safe_fields")

    logger.info(
        "safe_event",
        extra={
            "request_id": "req-123",
            "operation": "POST /api/tasks",
            "status": 200,
            "duration_ms": 150.5,
        },
    )

    output = stream.getvalue()

    assert "req-123" in output
    assert "POST /api/tasks" in output
    assert "200" in output
    assert "[REDACTED]" not in output


def test_sensitive_filter_redacts_nested_dicts():
    """Ensure nested sensitive fields are redacted."""

    logger, stream = _capture("test_nested")

    logger.info(
        "nested_event",
        extra={
            "headers": {
                "authorization": "secret-value",
                "user-agent": "pytest",
            },
            "safe_data": {
                "count": 5,
                "type": "test",
            },
        },
    )

    output = stream.getvalue()

    assert "secret-value" not in output
    assert "[REDACTED]" in output
    assert "pytest" in output


def test_request_context_is_attached():
    logger, stream = _capture("test_context")
    set_request_id("req-ctx-1")
    set_client_type("guest")
    try:
        logger.info("context_event")
    finally:
        clear_request_context()

    record = json.loads(stream.getvalue())

    assert record["request_id"] == "req-ctx-1"
    assert record["client_type"] == "guest"
    assert record["level"] == "info"
    assert record["message"] == "context_event"
