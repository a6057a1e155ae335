"""
Tests for per-session turn serialization.
"""

import asyncio

import pytest

from tutorloop.core.locks import SessionLockRegistry


class TestSessionLockRegistry:
    @pytest.mark.asyncio
    async def test_same_session_is_serialized(self):
        locks = SessionLockRegistry()
        active = 0
        max_active = 0

        async def turn():
            nonlocal active, max_active
            async with locks.hold("s1"):
                active += 1
                max_active = max(max_active, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(turn() for _ in range(5)))

        assert max_active == 1

    @pytest.mark.asyncio
    async def test_different_sessions_run_concurrently(self):
        locks = SessionLockRegistry()
        both_inside = asyncio.Event()
        inside = 0

        async def turn(session_id):
            nonlocal inside
            async with locks.hold(session_id):
                inside += 1
                if inside == 2:
                    both_inside.set()
                await asyncio.wait_for(both_inside.wait(), timeout=1.0)

        await asyncio.gather(turn("s1"), turn("s2"))

        assert both_inside.is_set()

    @pytest.mark.asyncio
    async def test_entries_are_released(self):
        locks = SessionLockRegistry()

        async with locks.hold("s1"):
            assert locks.in_flight() == 1

        assert locks.in_flight() == 0

    @pytest.mark.asyncio
    async def test_released_after_exception(self):
        locks = SessionLockRegistry()

        with pytest.raises(RuntimeError):
            async with locks.hold("s1"):
                raise RuntimeError("boom")

        assert locks.in_flight() == 0
        async with locks.hold("s1"):
            pass

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_leak(self):
        locks = SessionLockRegistry()
        release = asyncio.Event()

        async def holder():
            async with locks.hold("s1"):
                await release.wait()

        holding = asyncio.create_task(holder())
        await asyncio.sleep(0)

        async def waiter():
            async with locks.hold("s1"):
                pass

        waiting = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        waiting.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiting

        release.set()
        await holding
        assert locks.in_flight() == 0

    @pytest.mark.asyncio
    async def test_disabled_registry_does_not_serialize(self):
        locks = SessionLockRegistry(enabled=False)
        inside = 0
        max_inside = 0

        async def turn():
            nonlocal inside, max_inside
            async with locks.hold("s1"):
                inside += 1
                max_inside = max(max_inside, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(turn(), turn())

        assert max_inside == 2
        assert locks.in_flight() == 0
