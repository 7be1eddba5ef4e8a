"""
Per-account guard between output splitting and spending.

Capacity management takes the exclusive side; anything that consumes or
produces outputs (publishes, updates, funding) takes the shared side.
No such call may run without holding one of the two.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class SpendGuard:
    """Reader/writer lock: many spenders or one capacity pass, never both."""

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._spenders = 0
        self._exclusive = False
        self._waiting_exclusive = 0

    @property
    def exclusive_held(self) -> bool:
        return self._exclusive

    @property
    def spenders(self) -> int:
        return self._spenders

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._cond:
            self._waiting_exclusive += 1
            try:
                await self._cond.wait_for(lambda: not self._exclusive and self._spenders == 0)
            finally:
                self._waiting_exclusive -= 1
                self._cond.notify_all()
            self._exclusive = True
        try:
            yield
        finally:
            async with self._cond:
                self._exclusive = False
                self._cond.notify_all()

    @asynccontextmanager
    async def shared(self) -> AsyncIterator[None]:
        async with self._cond:
            # No new spender while a capacity pass is queued
            await self._cond.wait_for(
                lambda: not self._exclusive and self._waiting_exclusive == 0
            )
            self._spenders += 1
        try:
            yield
        finally:
            async with self._cond:
                self._spenders -= 1
                self._cond.notify_all()


class AccountLocks:
    """One SpendGuard per account id."""

    def __init__(self) -> None:
        self._guards: dict[str, SpendGuard] = {}

    def for_account(self, account_id: str) -> SpendGuard:
        guard = self._guards.get(account_id)
        if guard is None:
            guard = SpendGuard()
            self._guards[account_id] = guard
        return guard
