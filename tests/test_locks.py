"""
Tests for the per-account spend guard.
"""

from __future__ import annotations

import asyncio

import pytest

from ytsync.wallet.locks import AccountLocks, SpendGuard


class TestSpendGuard:
    @pytest.mark.asyncio
    async def test_spenders_share(self) -> None:
        guard = SpendGuard()
        async with guard.shared():
            async with guard.shared():
                assert guard.spenders == 2
        assert guard.spenders == 0

    @pytest.mark.asyncio
    async def test_exclusive_waits_for_spenders(self) -> None:
        guard = SpendGuard()
        events: list[str] = []

        async def spender() -> None:
            async with guard.shared():
                events.append("spend-start")
                await asyncio.sleep(0.02)
                events.append("spend-end")

        async def capacity() -> None:
            await asyncio.sleep(0.005)
            async with guard.exclusive():
                events.append("capacity")

        await asyncio.gather(spender(), capacity())
        assert events == ["spend-start", "spend-end", "capacity"]

    @pytest.mark.asyncio
    async def test_spenders_wait_for_exclusive(self) -> None:
        guard = SpendGuard()
        events: list[str] = []

        async def capacity() -> None:
            async with guard.exclusive():
                events.append("capacity-start")
                await asyncio.sleep(0.02)
                events.append("capacity-end")

        async def spender() -> None:
            await asyncio.sleep(0.005)
            async with guard.shared():
                events.append("spend")

        await asyncio.gather(capacity(), spender())
        assert events == ["capacity-start", "capacity-end", "spend"]

    @pytest.mark.asyncio
    async def test_queued_exclusive_blocks_new_spenders(self) -> None:
        guard = SpendGuard()
        events: list[str] = []

        async def first_spender() -> None:
            async with guard.shared():
                await asyncio.sleep(0.02)
                events.append("first-spend")

        async def capacity() -> None:
            await asyncio.sleep(0.005)
            async with guard.exclusive():
                events.append("capacity")

        async def late_spender() -> None:
            await asyncio.sleep(0.01)
            async with guard.shared():
                events.append("late-spend")

        await asyncio.gather(first_spender(), capacity(), late_spender())
        assert events == ["first-spend", "capacity", "late-spend"]

    @pytest.mark.asyncio
    async def test_released_on_error(self) -> None:
        guard = SpendGuard()
        with pytest.raises(RuntimeError):
            async with guard.exclusive():
                raise RuntimeError("boom")
        assert not guard.exclusive_held
        async with guard.shared():
            assert guard.spenders == 1


def test_account_locks_one_guard_per_account() -> None:
    locks = AccountLocks()
    assert locks.for_account("a") is locks.for_account("a")
    assert locks.for_account("a") is not locks.for_account("b")
