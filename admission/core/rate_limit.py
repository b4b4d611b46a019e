"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the window store (memory or Redis) is chosen by settings
  behind an abstract interface.
- Availability first: store outages admit traffic instead of blocking it.

Rate limiting strategy:
- Fixed window per (identity, operation), quotas from the policy table.
- Identity is the authenticated user id, or the client IP for guests.
- Operation is ``METHOD /path`` with numeric segments collapsed to ``:id``.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request, Response

from admission.adapters.rate_limit.base import RateLimitStore
from admission.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from admission.adapters.rate_limit.redis_store import RedisRateLimitStore
from admission.core.auth import resolve_identity
from admission.core.config import RateLimitSettings, settings
from admission.core.constants import RATE_LIMIT_EXCEEDED
from admission.core.errors import RateLimitAppError, ValidationAppError
from admission.services.identity_service import Identity
from admission.services.rate_limit_service import (
    RateLimiter,
    RateLimitPolicy,
    RateLimitPolicyTable,
    RateLimitResult,
    RateLimitSweeper,
    normalize_operation,
)

logger = logging.getLogger(__name__)


_limiter: RateLimiter | None = None
_limiter_config: str | None = None


def create_rate_limit_store(config: RateLimitSettings) -> RateLimitStore:
    """Instantiate the configured window store.

    Raises:
        ValidationAppError: On an unknown backend or a missing Redis URL.
    """

    backend = config.backend.lower()
    if backend == "memory":
        return InMemoryRateLimitStore()
    if backend == "redis":
        if not config.redis_url:
            raise ValidationAppError(
                code="rate_limit_missing_redis_url",
                message="Redis rate limit backend requires RATE_LIMIT_REDIS_URL",
            )
        return RedisRateLimitStore.from_url(config.redis_url)
    raise ValidationAppError(
        code="rate_limit_unknown_backend",
        message=f"Unknown rate limit backend: '{config.backend}'. Supported: memory, redis",
    )


def build_policy_table(config: RateLimitSettings) -> RateLimitPolicyTable:
    return RateLimitPolicyTable(
        {
            operation: RateLimitPolicy(limit=policy.limit, window_seconds=policy.window_seconds)
            for operation, policy in config.policies.items()
        },
        default=RateLimitPolicy(
            limit=config.default_limit,
            window_seconds=config.default_window_seconds,
        ),
    )


def get_rate_limiter() -> RateLimiter:
    """Return a process-wide rate limiter instance.

    The instance is cached in-module to preserve window state across
    requests. If configuration changes (primarily in tests), the limiter is
    rebuilt with a fresh store.
    """

    global _limiter, _limiter_config

    config = settings.rate_limit.model_dump_json() + f"|production={settings.is_production}"

    if _limiter is None or _limiter_config != config:
        _limiter = RateLimiter(
            create_rate_limit_store(settings.rate_limit),
            build_policy_table(settings.rate_limit),
            bypass_admins=(
                settings.rate_limit.bypass_admins_outside_production
                and not settings.is_production
            ),
        )
        _limiter_config = config

    return _limiter


def create_sweeper() -> RateLimitSweeper:
    """Sweeper following whichever limiter ``get_rate_limiter`` currently returns."""
    return RateLimitSweeper(
        lambda: get_rate_limiter().store,
        interval_seconds=settings.rate_limit.sweep_interval_seconds,
    )


def rejection_body(identity: Identity, endpoint: str, result: RateLimitResult) -> dict:
    """Structured rejection returned to REST clients."""

    return {
        "message": (
            f"Rate limit exceeded. Maximum {result.limit} requests per "
            f"{result.window_seconds} seconds."
        ),
        "code": RATE_LIMIT_EXCEEDED,
        "clientType": identity.client_type,
        "clientIdentifier": identity.client_identifier,
        "endpoint": endpoint,
        "limit": result.limit,
        "window": result.window_seconds,
        "retryAfter": result.retry_after_seconds or 0,
    }


async def enforce_rate_limit(
    request: Request,
    response: Response,
    identity: Identity = Depends(resolve_identity),
) -> RateLimitResult | None:
    """FastAPI dependency enforcing per-operation rate limits.

    When enabled, counts one request against the caller's quota for the
    current operation. Allowed requests get ``X-RateLimit-*`` headers;
    rejected requests end with HTTP 429.

    Raises:
        RateLimitAppError: When the quota is exhausted (rendered as 429).
    """

    if not settings.rate_limit.enabled:
        return None

    limiter = get_rate_limiter()
    operation = normalize_operation(request.method, request.url.path)
    result = await limiter.admit_request(identity, operation)

    if result.allowed:
        if settings.rate_limit.include_headers and not result.bypassed:
            response.headers.update(result.headers())
        return result

    endpoint = f"{request.method} {request.url.path}"
    body = rejection_body(identity, endpoint, result)
    raise RateLimitAppError(
        code=body.pop("code"),
        message=body.pop("message"),
        details=body,
        headers=result.headers() if settings.rate_limit.include_headers else None,
    )
