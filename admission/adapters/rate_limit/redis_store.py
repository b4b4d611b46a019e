"""Redis-backed rate limit window store.

Shared by every worker and instance pointing at the same Redis. The
reset-or-increment step runs as a single Lua script so it is atomic on the
server. Keys expire on their own shortly after their window closes, so no
sweep is needed.
"""

from __future__ import annotations

import math

import redis.asyncio as redis
from redis.exceptions import RedisError

from admission.adapters.rate_limit.base import RateLimitStore, WindowState
from admission.core.errors import RateLimitStoreError

# KEYS[1] = window key; ARGV[1] = now (s), ARGV[2] = window (s), ARGV[3] = ttl (ms)
_INCREMENT_SCRIPT = """
local state = redis.call('HMGET', KEYS[1], 'count', 'window_start', 'window_seconds')
local now = tonumber(ARGV[1])
local count = tonumber(state[1])
local start = tonumber(state[2])
local window = tonumber(state[3])
if (not count) or (not start) or (not window) or (now - start > window) then
  count = 0
  start = now
  window = tonumber(ARGV[2])
end
count = count + 1
redis.call('HSET', KEYS[1], 'count', count, 'window_start', tostring(start), 'window_seconds', tostring(window))
redis.call('PEXPIRE', KEYS[1], ARGV[3])
return {count, tostring(start), tostring(window)}
"""

# Grace period keeping a window readable for a moment after it closes
_TTL_GRACE_MS = 1000


class RedisRateLimitStore(RateLimitStore):
    """Window store kept in Redis hashes under ``<prefix><key>``."""

    def __init__(self, client: redis.Redis, *, key_prefix: str = "rate_limit:") -> None:
        self._redis = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, key_prefix: str = "rate_limit:") -> "RedisRateLimitStore":
        return cls(redis.from_url(url), key_prefix=key_prefix)

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> WindowState | None:
        try:
            count, start, window = await self._redis.hmget(
                self._make_key(key), "count", "window_start", "window_seconds"
            )
        except RedisError as exc:
            raise RateLimitStoreError(
                code="rate_limit_store_unavailable",
                message=f"Redis read failed: {exc}",
            ) from exc

        if count is None or start is None or window is None:
            return None
        return WindowState(count=int(count), window_start=float(start), window_seconds=float(window))

    async def increment(self, key: str, *, window_seconds: float, now: float) -> WindowState:
        if not key:
            raise ValueError("key must be a non-empty string")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        ttl_ms = int(math.ceil(window_seconds * 1000)) + _TTL_GRACE_MS
        try:
            count, start, window = await self._redis.eval(
                _INCREMENT_SCRIPT,
                1,
                self._make_key(key),
                repr(float(now)),
                repr(float(window_seconds)),
                ttl_ms,
            )
        except RedisError as exc:
            raise RateLimitStoreError(
                code="rate_limit_store_unavailable",
                message=f"Redis increment failed: {exc}",
            ) from exc

        return WindowState(count=int(count), window_start=float(start), window_seconds=float(window))

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._make_key(key))
        except RedisError as exc:
            raise RateLimitStoreError(
                code="rate_limit_store_unavailable",
                message=f"Redis delete failed: {exc}",
            ) from exc

    async def sweep(self, now: float) -> int:
        # Expiry is delegated to Redis key TTLs.
        return 0

    async def close(self) -> None:
        await self._redis.aclose()
