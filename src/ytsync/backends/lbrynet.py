"""
lbrynet JSON-RPC wallet daemon backend.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from ytsync.backends.base import (
    Account,
    Claim,
    ClaimOutput,
    DaemonStatus,
    UnspentOutput,
    WalletDaemon,
)
from ytsync.errors import DaemonRPCError, NoDaemonResponse

# Publishing and funding transactions can take a while to build and broadcast
DEFAULT_RPC_TIMEOUT = 120.0

# Maximum outputs returned by a single utxo_list page
UTXO_PAGE_SIZE = 10000


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning(f"Could not parse amount {value!r}, treating as 0")
        return Decimal("0")


def _claim_from_item(item: dict[str, Any]) -> Claim:
    return Claim(
        claim_id=item.get("claim_id", ""),
        name=item.get("name", ""),
        value=item.get("value") or {},
    )


def _first_output(method: str, result: dict[str, Any] | None) -> ClaimOutput:
    if not result or not result.get("outputs"):
        raise NoDaemonResponse(method)
    output = result["outputs"][0]
    return ClaimOutput(
        claim_id=output.get("claim_id", ""),
        name=output.get("name", ""),
        txid=result.get("txid", ""),
    )


class LbrynetBackend(WalletDaemon):
    """
    Wallet daemon backend talking to lbrynet's JSON-RPC API.
    """

    def __init__(
        self,
        rpc_url: str = "http://127.0.0.1:5279",
        timeout: float = DEFAULT_RPC_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def _rpc_call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """
        Make an RPC call to lbrynet.

        Raises:
            DaemonRPCError: On RPC errors
            httpx.HTTPError: On connection/timeout errors
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": {k: v for k, v in (params or {}).items() if v is not None},
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"RPC call timed out: {method} - {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"RPC call failed: {method} - {e}")
            raise

        if data.get("error"):
            error_info = data["error"]
            if isinstance(error_info, dict):
                raise DaemonRPCError(
                    method,
                    error_info.get("code", "unknown"),
                    error_info.get("message", str(error_info)),
                )
            raise DaemonRPCError(method, "unknown", str(error_info))

        return data.get("result")

    async def account_list(self) -> list[Account] | None:
        result = await self._rpc_call("account_list", {"page": 1, "page_size": 50})
        if result is None:
            return None
        return [
            Account(
                id=item["id"],
                ledger=item.get("ledger", ""),
                is_default=bool(item.get("is_default", False)),
                name=item.get("name", ""),
            )
            for item in result.get("items", [])
        ]

    async def account_set(
        self, account_id: str, change_max_uses: int, receiving_max_uses: int
    ) -> None:
        await self._rpc_call(
            "account_set",
            {
                "account_id": account_id,
                "change_max_uses": change_max_uses,
                "receiving_max_uses": receiving_max_uses,
            },
        )

    async def account_balance(self, account_id: str | None = None) -> Decimal | None:
        result = await self._rpc_call("account_balance", {"account_id": account_id})
        if not result or "available" not in result:
            return None
        return _to_decimal(result["available"])

    async def account_fund(
        self,
        from_account: str,
        to_account: str,
        amount: Decimal,
        outputs: int,
        broadcast: bool = True,
    ) -> dict[str, Any] | None:
        logger.debug(f"account_fund {amount} LBC into {outputs} outputs (broadcast={broadcast})")
        return await self._rpc_call(
            "account_fund",
            {
                "from_account": from_account,
                "to_account": to_account,
                "amount": f"{amount:.4f}",
                "outputs": outputs,
                "broadcast": broadcast,
            },
        )

    async def utxo_list(self, account_id: str) -> list[UnspentOutput] | None:
        result = await self._rpc_call(
            "utxo_list", {"account_id": account_id, "page": 1, "page_size": UTXO_PAGE_SIZE}
        )
        if result is None:
            return None
        return [
            UnspentOutput(
                amount=_to_decimal(item.get("amount", "0")),
                confirmations=int(item.get("confirmations", 0)),
                is_mine=bool(item.get("is_my_output", item.get("is_mine", False))),
                type=item.get("type", ""),
                txid=item.get("txid", ""),
                nout=int(item.get("nout", 0)),
            )
            for item in result.get("items", [])
        ]

    async def address_list(self, account_id: str | None = None) -> list[str] | None:
        result = await self._rpc_call(
            "address_list", {"account_id": account_id, "page": 1, "page_size": 20}
        )
        if result is None:
            return None
        return [item.get("address", "") for item in result.get("items", [])]

    async def address_unused(self, account_id: str) -> str | None:
        return await self._rpc_call("address_unused", {"account_id": account_id})

    async def channel_list(self, account_id: str | None = None) -> list[Claim] | None:
        result = await self._rpc_call(
            "channel_list", {"account_id": account_id, "page": 1, "page_size": 50}
        )
        if result is None:
            return None
        return [_claim_from_item(item) for item in result.get("items", [])]

    async def channel_create(
        self, name: str, bid: Decimal, options: dict[str, Any]
    ) -> ClaimOutput:
        params = {"name": name, "bid": f"{bid:.8f}", **options}
        result = await self._rpc_call("channel_create", params)
        return _first_output("channel_create", result)

    async def channel_update(
        self, claim_id: str, options: dict[str, Any], clear: bool = False
    ) -> ClaimOutput:
        params: dict[str, Any] = {"claim_id": claim_id, **options}
        if clear:
            params.update(clear_tags=True, clear_languages=True, clear_locations=True)
        result = await self._rpc_call("channel_update", params)
        return _first_output("channel_update", result)

    async def stream_create(
        self, name: str, bid: Decimal, file_path: Path, options: dict[str, Any]
    ) -> ClaimOutput:
        params = {"name": name, "bid": f"{bid:.8f}", "file_path": str(file_path), **options}
        result = await self._rpc_call("stream_create", params)
        return _first_output("stream_create", result)

    async def stream_update(
        self,
        claim_id: str,
        options: dict[str, Any],
        file_size: int | None = None,
        clear: bool = False,
    ) -> ClaimOutput:
        params: dict[str, Any] = {"claim_id": claim_id, "file_size": file_size, **options}
        if clear:
            params.update(clear_tags=True, clear_languages=True, clear_locations=True)
        result = await self._rpc_call("stream_update", params)
        return _first_output("stream_update", result)

    async def claim_search(self, claim_id: str) -> list[Claim]:
        result = await self._rpc_call("claim_search", {"claim_id": claim_id})
        if result is None:
            raise NoDaemonResponse("claim_search")
        return [_claim_from_item(item) for item in result.get("items", [])]

    async def status(self) -> DaemonStatus:
        result = await self._rpc_call("status")
        if not result:
            raise NoDaemonResponse("status")
        wallet = result.get("wallet") or {}
        return DaemonStatus(
            blocks=int(wallet.get("blocks", 0)),
            blocks_behind=int(wallet.get("blocks_behind", 0)),
        )

    async def close(self) -> None:
        await self.client.aclose()
