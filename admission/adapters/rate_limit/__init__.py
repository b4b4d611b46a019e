"""Rate limit window stores.

This package provides a small abstraction layer so deployments can start
with an in-memory store and move to Redis for shared limits without changing
the rate limiter or the protocol adapters.
"""

from admission.adapters.rate_limit.base import RateLimitStore, WindowState
from admission.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from admission.adapters.rate_limit.redis_store import RedisRateLimitStore

__all__ = [
    "InMemoryRateLimitStore",
    "RateLimitStore",
    "RedisRateLimitStore",
    "WindowState",
]
