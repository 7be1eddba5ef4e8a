"""
Base wallet daemon interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any


@dataclass
class Account:
    id: str
    ledger: str
    is_default: bool = False
    name: str = ""


@dataclass
class UnspentOutput:
    amount: Decimal
    confirmations: int
    is_mine: bool
    type: str
    txid: str = ""
    nout: int = 0


@dataclass
class Claim:
    claim_id: str
    name: str
    value: dict[str, Any] = field(default_factory=dict)

    @property
    def has_thumbnail(self) -> bool:
        """Current-format metadata always carries a thumbnail."""
        thumbnail = self.value.get("thumbnail")
        return bool(thumbnail and thumbnail.get("url"))

    @property
    def stream_size(self) -> int | None:
        """Size in bytes from the claim's embedded stream descriptor."""
        source = self.value.get("source") or {}
        size = source.get("size")
        if size is None:
            return None
        try:
            size = int(size)
        except (TypeError, ValueError):
            return None
        return size if size > 0 else None


@dataclass
class ClaimOutput:
    """Claim produced by a create or update transaction."""

    claim_id: str
    name: str
    txid: str = ""


@dataclass
class DaemonStatus:
    blocks: int
    blocks_behind: int

    @property
    def synced(self) -> bool:
        return self.blocks > 0 and self.blocks_behind == 0


class WalletDaemon(ABC):
    """
    Command surface of the wallet/ledger daemon.

    Calls that return None mean the daemon answered without data; callers
    decide whether that is fatal.
    """

    @abstractmethod
    async def account_list(self) -> list[Account] | None:
        """List wallet accounts"""

    @abstractmethod
    async def account_set(
        self, account_id: str, change_max_uses: int, receiving_max_uses: int
    ) -> None:
        """Update address reuse settings of an account"""

    @abstractmethod
    async def account_balance(self, account_id: str | None = None) -> Decimal | None:
        """Available balance of an account (default account if None)"""

    @abstractmethod
    async def account_fund(
        self,
        from_account: str,
        to_account: str,
        amount: Decimal,
        outputs: int,
        broadcast: bool = True,
    ) -> dict[str, Any] | None:
        """Move funds between accounts, splitting into the given number of outputs"""

    @abstractmethod
    async def utxo_list(self, account_id: str) -> list[UnspentOutput] | None:
        """List unspent outputs of an account"""

    @abstractmethod
    async def address_list(self, account_id: str | None = None) -> list[str] | None:
        """List receiving addresses"""

    @abstractmethod
    async def address_unused(self, account_id: str) -> str | None:
        """Get an address that has not received funds yet"""

    @abstractmethod
    async def channel_list(self, account_id: str | None = None) -> list[Claim] | None:
        """List channel claims under wallet control"""

    @abstractmethod
    async def channel_create(
        self, name: str, bid: Decimal, options: dict[str, Any]
    ) -> ClaimOutput:
        """Create a channel claim"""

    @abstractmethod
    async def channel_update(
        self, claim_id: str, options: dict[str, Any], clear: bool = False
    ) -> ClaimOutput:
        """Update a channel claim; clear=True replaces tags, languages and locations"""

    @abstractmethod
    async def stream_create(
        self, name: str, bid: Decimal, file_path: Path, options: dict[str, Any]
    ) -> ClaimOutput:
        """Publish a stream claim for a local file"""

    @abstractmethod
    async def stream_update(
        self,
        claim_id: str,
        options: dict[str, Any],
        file_size: int | None = None,
        clear: bool = False,
    ) -> ClaimOutput:
        """Update a stream claim without uploading media"""

    @abstractmethod
    async def claim_search(self, claim_id: str) -> list[Claim]:
        """Search claims by id"""

    @abstractmethod
    async def status(self) -> DaemonStatus:
        """Wallet sync status"""

    async def close(self) -> None:
        """Close daemon connection"""
        pass
