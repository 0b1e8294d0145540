"""Tests for the resource governor."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from vrt.capture.resource_governor import ResourceGovernor


def test_rejects_zero_sessions():
    with pytest.raises(ValueError):
        ResourceGovernor(max_sessions=0)


@pytest.mark.asyncio
class TestResourceGovernor:
    """Tests for slot accounting and eviction."""

    async def test_acquire_and_release(self):
        governor = ResourceGovernor(max_sessions=2, poll_interval=0.01)
        handle = await governor.acquire("desktop")
        assert governor.active_count == 1

        await governor.release(handle)
        assert governor.active_count == 0

    async def test_double_release_is_noop(self):
        governor = ResourceGovernor(max_sessions=2, poll_interval=0.01)
        first = await governor.acquire()
        second = await governor.acquire()

        await governor.release(first)
        await governor.release(first)
        assert governor.active_count == 1
        await governor.release(second)
        assert governor.active_count == 0

    async def test_never_exceeds_max(self):
        governor = ResourceGovernor(max_sessions=2, poll_interval=0.001)
        observed = []

        async def worker(i):
            async with governor.session(f"job-{i}"):
                observed.append(governor.active_count)
                await asyncio.sleep(0.005)

        await asyncio.gather(*(worker(i) for i in range(8)))

        assert max(observed) <= 2
        assert governor.peak_sessions == 2
        assert governor.active_count == 0

    async def test_session_releases_on_error(self):
        governor = ResourceGovernor(max_sessions=1, poll_interval=0.01)
        with pytest.raises(RuntimeError):
            async with governor.session():
                raise RuntimeError("crash")
        assert governor.active_count == 0

    async def test_check_memory_under_threshold(self):
        governor = ResourceGovernor(memory_threshold=100, memory_probe=lambda: 50)
        await governor.acquire()
        await governor.acquire()
        assert await governor.check_memory() is False
        assert governor.active_count == 2

    async def test_check_memory_evicts_oldest(self):
        governor = ResourceGovernor(max_sessions=3, memory_threshold=100, memory_probe=lambda: 500)
        oldest = await governor.acquire("oldest")
        newest = await governor.acquire("newest")
        closer = AsyncMock()
        governor.attach(oldest, closer)

        assert await governor.check_memory() is True

        closer.assert_awaited_once()
        assert oldest.evicted
        assert not newest.evicted
        assert governor.active_count == 1
        assert governor.evictions == 1

    async def test_check_memory_keeps_single_session(self):
        governor = ResourceGovernor(memory_threshold=100, memory_probe=lambda: 500)
        await governor.acquire()
        assert await governor.check_memory() is False
        assert governor.active_count == 1

    async def test_eviction_survives_closer_error(self):
        governor = ResourceGovernor(memory_threshold=100, memory_probe=lambda: 500)
        oldest = await governor.acquire()
        await governor.acquire()
        governor.attach(oldest, AsyncMock(side_effect=RuntimeError("already closed")))

        assert await governor.check_memory() is True
        assert governor.active_count == 1
