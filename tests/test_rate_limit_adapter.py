"""Unit tests for the in-memory rate limit window store."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from admission.adapters.rate_limit.base import WindowState
from admission.adapters.rate_limit.in_memory import InMemoryRateLimitStore


@pytest.mark.asyncio
async def test_first_increment_opens_window() -> None:
    store = InMemoryRateLimitStore()

    state = await store.increment("k", window_seconds=60, now=1000.0)

    assert state == WindowState(count=1, window_start=1000.0, window_seconds=60)
    assert state.reset_at == 1060.0


@pytest.mark.asyncio
async def test_counts_within_same_window() -> None:
    store = InMemoryRateLimitStore()

    await store.increment("k", window_seconds=60, now=1000.0)
    await store.increment("k", window_seconds=60, now=1010.0)
    state = await store.increment("k", window_seconds=60, now=1060.0)

    # Exactly at the boundary the window is still open
    assert state.count == 3
    assert state.window_start == 1000.0


@pytest.mark.asyncio
async def test_resets_after_window_elapsed() -> None:
    store = InMemoryRateLimitStore()

    await store.increment("k", window_seconds=10, now=1000.0)
    await store.increment("k", window_seconds=10, now=1001.0)
    state = await store.increment("k", window_seconds=10, now=1010.5)

    assert state.count == 1
    assert state.window_start == 1010.5


@pytest.mark.asyncio
async def test_isolated_by_key() -> None:
    store = InMemoryRateLimitStore()

    await store.increment("k1", window_seconds=60, now=1000.0)
    await store.increment("k1", window_seconds=60, now=1000.0)
    state = await store.increment("k2", window_seconds=60, now=1000.0)

    assert state.count == 1
    assert (await store.get("k1")).count == 2


@pytest.mark.asyncio
async def test_get_and_delete() -> None:
    store = InMemoryRateLimitStore()

    assert await store.get("k") is None
    await store.increment("k", window_seconds=60, now=1000.0)
    assert await store.get("k") is not None

    await store.delete("k")
    assert await store.get("k") is None
    await store.delete("missing")


@pytest.mark.asyncio
async def test_sweep_removes_only_expired_windows() -> None:
    store = InMemoryRateLimitStore()
    await store.increment("old", window_seconds=10, now=1000.0)
    await store.increment("fresh", window_seconds=10, now=1015.0)

    removed = await store.sweep(now=1020.0)

    assert removed == 1
    assert len(store) == 1
    assert await store.get("old") is None
    assert await store.get("fresh") is not None


@pytest.mark.asyncio
async def test_concurrent_increments_never_share_a_count() -> None:
    store = InMemoryRateLimitStore()

    states = await asyncio.gather(
        *(store.increment("k", window_seconds=60, now=1000.0) for _ in range(50))
    )

    assert sorted(s.count for s in states) == list(range(1, 51))


def test_increments_from_many_threads_never_share_a_count() -> None:
    store = InMemoryRateLimitStore()

    def increment(_):
        return asyncio.run(store.increment("k", window_seconds=60, now=1000.0))

    with ThreadPoolExecutor(max_workers=8) as pool:
        states = list(pool.map(increment, range(50)))

    assert sorted(s.count for s in states) == list(range(1, 51))


@pytest.mark.asyncio
async def test_invalid_increment_args() -> None:
    store = InMemoryRateLimitStore()

    with pytest.raises(ValueError):
        await store.increment("", window_seconds=60, now=1000.0)

    with pytest.raises(ValueError):
        await store.increment("k", window_seconds=0, now=1000.0)
