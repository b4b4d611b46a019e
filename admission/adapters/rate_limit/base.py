"""Rate limit window store interfaces.

The rate limiter should depend on this abstraction (not the concrete
implementation) so the same admission logic runs over a per-process store or
a shared networked store.

Window semantics are fixed-and-reset-on-access: a window starts at the first
request for a key and is replaced by a fresh one on the first request after
``now - window_start > window_seconds``. A burst straddling the boundary can
therefore admit up to twice the limit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowState:
    """Counter state for one rate limit key.

    Attributes:
        count: Requests counted in the current window.
        window_start: UNIX time in seconds at which the window opened.
        window_seconds: Window size in seconds.
    """

    count: int
    window_start: float
    window_seconds: float

    @property
    def reset_at(self) -> float:
        return self.window_start + self.window_seconds

    def is_expired(self, now: float) -> bool:
        return now - self.window_start > self.window_seconds


class RateLimitStore(ABC):
    """Interface for window stores keyed by rate limit key."""

    @abstractmethod
    async def get(self, key: str) -> WindowState | None:
        """Return the stored window for key, expired or not, or None."""
        raise NotImplementedError

    @abstractmethod
    async def increment(self, key: str, *, window_seconds: float, now: float) -> WindowState:
        """Count one request for key and return the resulting window.

        Lookup, reset-on-expiry and increment happen atomically per key so
        concurrent callers never observe the same count.

        Args:
            key: Rate limit key.
            window_seconds: Window size applied when a new window is opened.
            now: Current UNIX time in seconds.

        Raises:
            RateLimitStoreError: If the backing storage is unavailable.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Forget the window for key."""
        raise NotImplementedError

    @abstractmethod
    async def sweep(self, now: float) -> int:
        """Remove expired windows and return how many were removed."""
        raise NotImplementedError
