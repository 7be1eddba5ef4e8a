"""
Waiting for the ledger to confirm freshly broadcast transactions.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from ytsync.backends.base import DaemonStatus, WalletDaemon
from ytsync.constants import BLOCK_POLL_INTERVAL, SYNC_POLL_INTERVAL
from ytsync.errors import ConfirmationTimeout, WaitCancelled
from ytsync.wallet.funding import FundingSource


class ConfirmationWaiter:
    """
    Polls the daemon until a block newer than the current tip arrives.

    Two phases:
    1. sync: wait until the wallet has blocks and is not behind the network
    2. new block: wait until the wallet height moves past the recorded tip

    Without a timeout or cancel event the wait is unbounded.
    """

    def __init__(
        self,
        daemon: WalletDaemon,
        generator: FundingSource | None = None,
        sync_interval: float = SYNC_POLL_INTERVAL,
        block_interval: float = BLOCK_POLL_INTERVAL,
    ):
        self.daemon = daemon
        self.generator = generator if generator is not None and generator.can_generate else None
        self.sync_interval = sync_interval
        self.block_interval = block_interval

    async def wait(
        self, cancel: asyncio.Event | None = None, timeout: float | None = None
    ) -> int:
        """
        Wait for a new block.

        Args:
            cancel: Event that aborts the wait when set
            timeout: Maximum time to wait in seconds (None waits forever)

        Returns:
            The new wallet block height

        Raises:
            ConfirmationTimeout: If the timeout elapses first
            WaitCancelled: If the cancel event is set
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        status = await self.wait_for_sync(cancel, deadline)
        return await self.wait_for_new_block(status.blocks, cancel, deadline)

    async def wait_for_sync(
        self, cancel: asyncio.Event | None = None, deadline: float | None = None
    ) -> DaemonStatus:
        status = await self.daemon.status()
        while not status.synced:
            logger.debug(
                f"Wallet not synced (blocks={status.blocks}, behind={status.blocks_behind})"
            )
            await self._sleep(self.sync_interval, cancel, deadline)
            status = await self.daemon.status()
        return status

    async def wait_for_new_block(
        self,
        current_block: int,
        cancel: asyncio.Event | None = None,
        deadline: float | None = None,
    ) -> int:
        status = await self.daemon.status()
        i = 0
        while status.blocks <= current_block:
            if i % 3 == 0:
                logger.info(f"Waiting for new block ({current_block + 1})...")
            if self.generator is not None:
                await self.generator.generate_blocks(1)
            await self._sleep(self.block_interval, cancel, deadline)
            status = await self.daemon.status()
            i += 1
        logger.debug(f"New block {status.blocks} seen")
        return status.blocks

    @staticmethod
    async def _sleep(
        interval: float, cancel: asyncio.Event | None, deadline: float | None
    ) -> None:
        loop = asyncio.get_running_loop()
        if cancel is not None and cancel.is_set():
            raise WaitCancelled("confirmation wait cancelled")
        if deadline is not None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise ConfirmationTimeout("timed out waiting for a new block")
            interval = min(interval, remaining)

        if cancel is None:
            await asyncio.sleep(interval)
        else:
            try:
                await asyncio.wait_for(cancel.wait(), timeout=interval)
            except TimeoutError:
                pass
            else:
                raise WaitCancelled("confirmation wait cancelled")

        if deadline is not None and loop.time() >= deadline:
            raise ConfirmationTimeout("timed out waiting for a new block")
