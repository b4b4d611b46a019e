"""In-memory rate limit window store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading

from admission.adapters.rate_limit.base import RateLimitStore, WindowState


class InMemoryRateLimitStore(RateLimitStore):
    """Window store held in a process-local dict.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits. Use the Redis store for shared limits.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state_by_key: dict[str, WindowState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    async def get(self, key: str) -> WindowState | None:
        with self._lock:
            return self._state_by_key.get(key)

    async def increment(self, key: str, *, window_seconds: float, now: float) -> WindowState:
        if not key:
            raise ValueError("key must be a non-empty string")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        with self._lock:
            state = self._state_by_key.get(key)
            if state is None or state.is_expired(now):
                state = WindowState(count=0, window_start=now, window_seconds=window_seconds)
            state = WindowState(
                count=state.count + 1,
                window_start=state.window_start,
                window_seconds=state.window_seconds,
            )
            self._state_by_key[key] = state
            return state

    async def delete(self, key: str) -> None:
        with self._lock:
            self._state_by_key.pop(key, None)

    async def sweep(self, now: float) -> int:
        with self._lock:
            snapshot = list(self._state_by_key.items())

        removed = 0
        for key, state in snapshot:
            if not state.is_expired(now):
                continue
            with self._lock:
                # Skip keys re-opened since the snapshot was taken
                if self._state_by_key.get(key) is state:
                    del self._state_by_key[key]
                    removed += 1
        return removed
