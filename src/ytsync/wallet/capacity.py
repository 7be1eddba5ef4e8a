"""
Wallet capacity management.

Keeps the publishing account funded for the remaining workload and split into
enough unspent outputs that publishes do not queue behind confirmations.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from decimal import Decimal

from loguru import logger

from ytsync.backends.base import Account, WalletDaemon
from ytsync.config import SyncConfig, WalletPolicy
from ytsync.errors import ConfigurationError, NoDaemonResponse
from ytsync.models import RecordStats
from ytsync.publishing.channel import ChannelOwnershipManager
from ytsync.sources.base import SourcePlatform
from ytsync.store import RecordStore
from ytsync.wallet.confirmations import ConfirmationWaiter
from ytsync.wallet.funding import WalletFunder
from ytsync.wallet.locks import SpendGuard

ZERO = Decimal("0")


@dataclass
class CapacityPlan:
    """Refill decision for one capacity pass."""

    balance: Decimal
    item_count: int
    unallocated: int
    required: Decimal
    refill: Decimal

    @property
    def needs_refill(self) -> bool:
        return self.refill > 0


@dataclass
class UtxoReport:
    count: int
    confirmed_count: int
    split_into: int = 0
    waited: bool = False


@dataclass
class CapacityReport:
    plan: CapacityPlan | None
    claim_address: str = ""
    utxos: UtxoReport | None = None


def plan_capacity(
    balance: Decimal,
    item_count: int,
    stats: RecordStats,
    policy: WalletPolicy,
    videos_limit: int,
    channel_claimed: bool,
    upgrade_metadata: bool = False,
    top_up: Decimal = ZERO,
) -> CapacityPlan:
    """
    Compute the balance needed for the remaining workload and the refill.

    required = unallocated * (publish_amount + max_tx_fee) + channel_fee + upgrade fees
    A refill happens when the balance is below either the requirement or the
    minimum reserve; it is never smaller than the minimum refill step.
    """
    unallocated = min(item_count, videos_limit) - stats.allocated

    channel_fee = ZERO if channel_claimed else policy.channel_claim_amount
    required = unallocated * (policy.publish_amount + policy.estimated_max_tx_fee) + channel_fee
    if upgrade_metadata:
        required += stats.not_upgraded * policy.legacy_upgrade_fee

    refill = ZERO
    if balance < required or balance < policy.minimum_account_balance:
        refill = max(
            required - balance,
            policy.minimum_account_balance - balance,
            policy.minimum_refill_amount,
        )
    refill += top_up

    return CapacityPlan(
        balance=balance,
        item_count=item_count,
        unallocated=unallocated,
        required=required,
        refill=refill,
    )


class WalletCapacityManager:
    """
    Sizes the publishing account for a channel sync.

    ensure_capacity() runs under the account's exclusive guard for its whole
    duration, confirmation waits included.
    """

    def __init__(
        self,
        daemon: WalletDaemon,
        account: Account,
        config: SyncConfig,
        ownership: ChannelOwnershipManager,
        source: SourcePlatform,
        store: RecordStore,
        funder: WalletFunder,
        waiter: ConfirmationWaiter,
        guard: SpendGuard,
        confirmation_timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ):
        self.daemon = daemon
        self.account = account
        self.config = config
        self.policy = config.wallet
        self.ownership = ownership
        self.source = source
        self.store = store
        self.funder = funder
        self.waiter = waiter
        self.guard = guard
        self.confirmation_timeout = confirmation_timeout
        self.cancel = cancel

        self.claim_address = ""

    async def _balance(self, account_id: str | None = None) -> Decimal:
        balance = await self.daemon.account_balance(account_id)
        if balance is None:
            raise NoDaemonResponse("account_balance")
        return balance

    async def ensure_capacity(self) -> CapacityReport:
        async with self.guard.exclusive():
            return await self._ensure_capacity()

    async def _ensure_capacity(self) -> CapacityReport:
        item_count = await self.source.count_videos(self.config.source_channel_id)
        logger.debug(f"Source channel has {item_count} videos")
        if item_count == 0:
            return CapacityReport(plan=None)

        await self.ownership.ensure_ownership()

        balance = await self._balance()
        logger.debug(f"Starting balance is {balance:.4f}")

        stats = self.store.record_stats()
        logger.debug(
            f"We already allocated credits for {stats.published} published videos "
            f"and {stats.failed} failed videos"
        )

        plan = plan_capacity(
            balance=balance,
            item_count=item_count,
            stats=stats,
            policy=self.policy,
            videos_limit=self.config.videos_limit,
            channel_claimed=bool(self.ownership.claim_id),
            upgrade_metadata=self.config.upgrade_metadata,
            top_up=self.config.refill,
        )
        logger.info(
            f"Required balance {plan.required:.4f} for {plan.unallocated} unallocated videos, "
            f"refill {plan.refill:.4f}"
        )
        if plan.needs_refill:
            await self.funder.add_credits(plan.refill)

        self.claim_address = await self.resolve_claim_address()
        utxos = await self.ensure_utxos()
        return CapacityReport(plan=plan, claim_address=self.claim_address, utxos=utxos)

    async def resolve_claim_address(self) -> str:
        """Address new claims are sent to."""
        if self.config.should_transfer:
            address = self.config.client_publish_address
        else:
            addresses = await self.daemon.address_list()
            if not addresses:
                raise NoDaemonResponse("address_list")
            address = addresses[0]
        if not address:
            raise ConfigurationError("found blank claim address")
        return address

    async def ensure_utxos(self) -> UtxoReport:
        """
        Split the balance into more outputs when too few are usable.

        Outputs count as usable when they are ours, of payment type and above
        dust. A resplit only happens below target - slack.
        """
        policy = self.policy
        utxos = await self.daemon.utxo_list(self.account.id)
        if utxos is None:
            raise NoDaemonResponse("utxo_list")

        count = 0
        confirmed_count = 0
        for utxo in utxos:
            if utxo.is_mine and utxo.type == "payment" and utxo.amount > policy.utxo_dust:
                if utxo.confirmations > 0:
                    confirmed_count += 1
                count += 1
        logger.info(f"utxo count: {count} ({confirmed_count} confirmed)")

        report = UtxoReport(count=count, confirmed_count=confirmed_count)
        if count < policy.utxo_target - policy.utxo_slack:
            balance = await self._balance(self.account.id)
            desired = min(math.floor(balance / policy.utxo_split_unit), policy.utxo_max_outputs)
            logger.info(f"Splitting balance of {balance:.3f} evenly between {desired} UTXOs")

            result = await self.daemon.account_fund(
                self.account.id,
                self.account.id,
                balance - policy.broadcast_fee,
                desired,
                broadcast=True,
            )
            if result is None:
                raise NoDaemonResponse("account_fund")
            report.split_into = desired

            if confirmed_count < policy.utxo_wait_threshold:
                await self._wait_for_confirmation()
                report.waited = True
        elif confirmed_count < policy.utxo_wait_threshold:
            logger.info("Waiting for previous txns to confirm")
            await self._wait_for_confirmation()
            report.waited = True

        return report

    async def _wait_for_confirmation(self) -> int:
        return await self.waiter.wait(cancel=self.cancel, timeout=self.confirmation_timeout)
