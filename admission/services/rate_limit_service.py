"""Per-identity, per-operation rate limiting.

Requests are counted per ``(identity subject, operation)`` pair in fixed
windows held by an injected :class:`RateLimitStore`. Quotas come from a
policy table keyed by normalized operation name.

Failure policy:
- Store errors fail open: the request is admitted and the failure logged.
- Administrators bypass limiting outside production (development aid).
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from dataclasses import dataclass
from typing import Callable, Mapping

from admission.adapters.rate_limit.base import RateLimitStore
from admission.core.errors import RateLimitStoreError
from admission.services.identity_service import Identity, hash_subject

logger = logging.getLogger(__name__)

_NUMERIC_SEGMENT = re.compile(r"/\d+(?=/|$)")
_PARAM_SEGMENT = re.compile(r"/:[A-Za-z_][A-Za-z0-9_]*(?=/|$)")
ID_PLACEHOLDER = "/:id"


def normalize_path(path: str) -> str:
    """Collapse numeric path segments to ``:id``.

    Examples:
        >>> normalize_path("/api/projects/42/members/7")
        '/api/projects/:id/members/:id'
        >>> normalize_path("/api/projects/my")
        '/api/projects/my'
    """
    return _NUMERIC_SEGMENT.sub(ID_PLACEHOLDER, path)


def normalize_operation(method: str, path: str) -> str:
    """Build the operation name for an HTTP request (``"GET /api/tasks/:id"``)."""
    return f"{method.upper()} {normalize_path(path)}"


def normalize_template(operation: str) -> str:
    """Normalize a configured operation so every route parameter reads ``:id``.

    ``"GET /api/projects/:projectId/tasks"`` and requests to
    ``/api/projects/3/tasks`` then share the same operation name. Field names
    (no space) are returned unchanged.
    """
    method, sep, path = operation.partition(" ")
    if not sep:
        return operation
    path = _PARAM_SEGMENT.sub(ID_PLACEHOLDER, normalize_path(path))
    return f"{method.upper()} {path}"


@dataclass(frozen=True)
class RateLimitKey:
    """Composite key: identity subject plus operation name."""

    subject: str
    operation: str

    def __str__(self) -> str:
        return f"{self.subject}:{self.operation}"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Quota applied to one operation."""

    limit: int
    window_seconds: int

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


class RateLimitPolicyTable:
    """Operation name to policy mapping with a default fallback.

    Lookup precedence: exact normalized operation name, else the default.
    """

    def __init__(self, policies: Mapping[str, RateLimitPolicy], default: RateLimitPolicy) -> None:
        self._policies = {normalize_template(name): policy for name, policy in policies.items()}
        self.default = default

    def __len__(self) -> int:
        return len(self._policies)

    def __contains__(self, operation: str) -> bool:
        return operation in self._policies

    def lookup(self, operation: str) -> RateLimitPolicy:
        return self._policies.get(operation, self.default)

    def items(self) -> list[tuple[str, RateLimitPolicy]]:
        """Configured policies sorted by operation name."""
        return sorted(self._policies.items())


@dataclass(frozen=True)
class RateLimitResult:
    """Result of an admit operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        window_seconds: Window size of the applied policy.
        bypassed: True when limiting was skipped for an administrator.
        degraded: True when the store failed and the request was let through.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    window_seconds: int
    bypassed: bool = False
    degraded: bool = False

    def headers(self) -> dict[str, str]:
        """Response headers describing the quota state."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds or 0)
        return headers


class RateLimiter:
    """Admit or reject requests against per-operation quotas."""

    def __init__(
        self,
        store: RateLimitStore,
        policies: RateLimitPolicyTable,
        *,
        bypass_admins: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            store: Window store shared by every caller of this limiter.
            policies: Per-operation quotas.
            bypass_admins: Admit administrators unconditionally. Only meant
                for non-production deployments.
            clock: Time source function returning UNIX time in seconds.
        """
        self._store = store
        self._policies = policies
        self._bypass_admins = bypass_admins
        self._clock = clock

    @property
    def store(self) -> RateLimitStore:
        return self._store

    @property
    def policies(self) -> RateLimitPolicyTable:
        return self._policies

    async def admit(self, key: RateLimitKey, policy: RateLimitPolicy) -> RateLimitResult:
        """Count one request for key and decide against policy.

        Raises:
            RateLimitStoreError: If the store is unavailable.
        """
        now = self._clock()
        state = await self._store.increment(str(key), window_seconds=policy.window_seconds, now=now)
        reset_at = int(math.ceil(state.reset_at))

        if state.count > policy.limit:
            retry_after = max(0, int(math.ceil(state.reset_at - now)))
            return RateLimitResult(
                allowed=False,
                limit=policy.limit,
                remaining=0,
                reset_at=reset_at,
                retry_after_seconds=retry_after,
                window_seconds=policy.window_seconds,
            )

        return RateLimitResult(
            allowed=True,
            limit=policy.limit,
            remaining=policy.limit - state.count,
            reset_at=reset_at,
            retry_after_seconds=None,
            window_seconds=policy.window_seconds,
        )

    async def admit_request(
        self,
        identity: Identity,
        operation: str,
        *,
        policy: RateLimitPolicy | None = None,
    ) -> RateLimitResult:
        """Admit a request from identity for operation.

        Args:
            identity: Resolved caller identity.
            operation: Normalized operation name (see :func:`normalize_operation`)
                or a GraphQL field name.
            policy: Explicit quota; when omitted the policy table is consulted.

        Returns:
            RateLimitResult; never raises for store failures.
        """
        policy = policy or self._policies.lookup(operation)

        if self._bypass_admins and identity.is_admin:
            return RateLimitResult(
                allowed=True,
                limit=policy.limit,
                remaining=policy.limit,
                reset_at=int(math.ceil(self._clock() + policy.window_seconds)),
                retry_after_seconds=None,
                window_seconds=policy.window_seconds,
                bypassed=True,
            )

        key = RateLimitKey(identity.rate_limit_subject, operation)
        try:
            result = await self.admit(key, policy)
        except RateLimitStoreError as exc:
            logger.error(
                "rate_limit.store_unavailable",
                extra={
                    "error_code": exc.code,
                    "error_message": exc.message,
                    "operation": operation,
                },
            )
            return RateLimitResult(
                allowed=True,
                limit=policy.limit,
                remaining=policy.limit,
                reset_at=int(math.ceil(self._clock() + policy.window_seconds)),
                retry_after_seconds=None,
                window_seconds=policy.window_seconds,
                degraded=True,
            )

        if not result.allowed:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "client_type": identity.client_type,
                    "subject_hash": hash_subject(identity.rate_limit_subject),
                    "operation": operation,
                    "limit": result.limit,
                    "window_s": result.window_seconds,
                    "retry_after_s": result.retry_after_seconds,
                },
            )
        return result


class RateLimitSweeper:
    """Background task that periodically drops expired windows.

    Housekeeping only: expired windows are also replaced lazily on access.
    ``store`` may be a store or a zero-argument callable returning the store
    to sweep; the callable is resolved on every tick so a rebuilt limiter
    is followed.
    """

    def __init__(
        self,
        store: RateLimitStore | Callable[[], RateLimitStore],
        *,
        interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._store = store
        self._interval = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _current_store(self) -> RateLimitStore:
        if isinstance(self._store, RateLimitStore):
            return self._store
        return self._store()

    async def sweep_once(self) -> int:
        try:
            removed = await self._current_store().sweep(self._clock())
        except RateLimitStoreError as exc:
            logger.error(
                "rate_limit.sweep_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            return 0
        if removed:
            logger.debug("rate_limit.swept", extra={"removed": removed})
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.sweep_once()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
