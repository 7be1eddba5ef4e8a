"""
External funding source for the publishing wallet.

Refills are plain ledger sends from a funded lbrycrd node to a fresh
receiving address of the publishing account.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger

from ytsync.backends.base import Account, WalletDaemon
from ytsync.errors import DaemonRPCError, NoDaemonResponse

DEFAULT_RPC_TIMEOUT = 30.0


class FundingSource(ABC):
    @abstractmethod
    async def send_to_address(self, address: str, amount: Decimal) -> str:
        """Send amount to address, returns txid"""

    @property
    def can_generate(self) -> bool:
        """True if this source can mine blocks (regtest only)"""
        return False

    async def generate_blocks(self, count: int) -> list[str]:
        raise NotImplementedError("this funding source cannot generate blocks")

    async def close(self) -> None:
        pass


class LbrycrdFunding(FundingSource):
    """
    Funding source backed by an lbrycrd node's wallet RPC.
    """

    def __init__(
        self,
        rpc_url: str = "http://127.0.0.1:9245",
        rpc_user: str = "lbry",
        rpc_password: str = "",
        regtest: bool = False,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.regtest = regtest
        self.client = client or httpx.AsyncClient(
            timeout=DEFAULT_RPC_TIMEOUT, auth=(rpc_user, rpc_password)
        )
        self._request_id = 0

    async def _rpc_call(self, method: str, params: list | None = None) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "1.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"lbrycrd RPC call failed: {method} - {e}")
            raise

        if data.get("error"):
            error_info = data["error"]
            raise DaemonRPCError(
                method, error_info.get("code", "unknown"), error_info.get("message", "")
            )
        return data.get("result")

    async def send_to_address(self, address: str, amount: Decimal) -> str:
        txid = await self._rpc_call("sendtoaddress", [address, float(amount)])
        logger.info(f"Sent {amount} LBC to {address}: {txid}")
        return txid

    @property
    def can_generate(self) -> bool:
        return self.regtest

    async def generate_blocks(self, count: int) -> list[str]:
        hashes = await self._rpc_call("generate", [count]) or []
        for block_hash in hashes:
            logger.info(f"Generated block: {block_hash}")
        return hashes

    async def close(self) -> None:
        await self.client.aclose()


class WalletFunder:
    """
    Tops up the publishing account from a funding source.

    The settle wait only gives the daemon time to notice the incoming
    transaction; it does not wait for a confirmation.
    """

    def __init__(
        self,
        daemon: WalletDaemon,
        account: Account,
        source: FundingSource,
        settle_seconds: float = 15.0,
    ):
        self.daemon = daemon
        self.account = account
        self.source = source
        self.settle_seconds = settle_seconds

    async def add_credits(self, amount: Decimal) -> str:
        logger.info(f"Adding {amount} credits")
        address = await self.daemon.address_unused(self.account.id)
        if not address:
            raise NoDaemonResponse("address_unused")

        txid = await self.source.send_to_address(address, amount)

        if self.settle_seconds > 0:
            logger.info(
                f"Waiting {self.settle_seconds:.0f}s for the wallet to see the new transaction"
            )
            await asyncio.sleep(self.settle_seconds)
        return txid
