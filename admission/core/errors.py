"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Admission decisions (identity, rate limit, authorization) are plain return
values inside the library; these exceptions are raised by the protocol
adapters when they translate a decision, and by adapters for infrastructure
failures the library recovers from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retryAfter: int
    limit: int
    window: int
    endpoint: str
    clientType: str
    clientIdentifier: str
    fieldName: str
    max: int
    complexity: int
    depth: int
    reason: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
        headers: Optional response headers the HTTP layer should send.
    """

    code: str
    message: str
    details: ErrorDetails | None = None
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when an operation requires an authenticated caller."""


class AuthorizationAppError(AppError):
    """Raised when an authenticated caller lacks the required role or relationship."""


class RateLimitAppError(AppError):
    """Raised when a caller exceeded the quota of an operation."""


class RateLimitStoreError(AppError):
    """Raised by window stores when the backing storage is unreachable."""


class CredentialVerificationError(AppError):
    """Raised by credential verifiers when a token fails verification."""
