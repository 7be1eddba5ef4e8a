"""
Tests for wallet capacity planning and output splitting.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import CHANNEL_CLAIM

from ytsync.backends.base import UnspentOutput
from ytsync.config import SyncConfig, WalletPolicy
from ytsync.errors import ConfigurationError, NoDaemonResponse
from ytsync.models import RecordStats, SyncedVideoRecord, TransferState
from ytsync.wallet.capacity import WalletCapacityManager, plan_capacity
from ytsync.wallet.locks import SpendGuard


def utxo(amount: str = "1.0", confirmations: int = 1, **kwargs) -> UnspentOutput:
    fields = {"is_mine": True, "type": "payment"}
    fields.update(kwargs)
    return UnspentOutput(amount=Decimal(amount), confirmations=confirmations, **fields)


class TestPlanCapacity:
    """Tests for the pure refill decision."""

    def plan(self, balance: str, items: int, **kwargs):
        params = {
            "stats": RecordStats(),
            "policy": WalletPolicy(),
            "videos_limit": 1000,
            "channel_claimed": True,
        }
        params.update(kwargs)
        return plan_capacity(Decimal(balance), items, **params)

    def test_balance_equal_to_required_needs_no_refill(self) -> None:
        plan = self.plan("1.1", 10)
        assert plan.required == Decimal("1.1")
        assert plan.refill == 0
        assert not plan.needs_refill

    def test_balance_equal_to_minimum_needs_no_refill(self) -> None:
        plan = self.plan("1.0", 5)
        assert plan.required == Decimal("0.55")
        assert plan.refill == 0

    def test_refill_is_at_least_minimum_step(self) -> None:
        plan = self.plan("0.5", 5)
        assert plan.refill == Decimal("1.0")

    def test_refill_covers_shortfall(self) -> None:
        plan = self.plan("0", 100)
        assert plan.required == Decimal("11")
        assert plan.refill == Decimal("11")

    def test_allocated_records_reduce_workload(self) -> None:
        plan = self.plan("0", 100, stats=RecordStats(published=60, failed=20))
        assert plan.unallocated == 20
        assert plan.required == Decimal("2.2")

    def test_videos_limit_caps_workload(self) -> None:
        plan = self.plan("100", 5000, videos_limit=100)
        assert plan.unallocated == 100

    def test_channel_claim_fee_when_unclaimed(self) -> None:
        plan = self.plan("100", 10, channel_claimed=False)
        assert plan.required == Decimal("1.11")

    def test_metadata_upgrade_fee(self) -> None:
        stats = RecordStats(published=10, not_upgraded=10)
        plan = self.plan("100", 20, stats=stats, upgrade_metadata=True)
        assert plan.required == Decimal("1.1") + Decimal("0.01")

        plan = self.plan("100", 20, stats=stats, upgrade_metadata=False)
        assert plan.required == Decimal("1.1")

    def test_top_up_always_added(self) -> None:
        plan = self.plan("100", 10, top_up=Decimal("5"))
        assert plan.refill == Decimal("5")

        plan = self.plan("0.5", 5, top_up=Decimal("5"))
        assert plan.refill == Decimal("6.0")


@pytest.fixture
def ownership() -> MagicMock:
    mock = MagicMock()
    mock.ensure_ownership = AsyncMock(return_value=CHANNEL_CLAIM)
    mock.claim_id = CHANNEL_CLAIM
    return mock


@pytest.fixture
def funder() -> MagicMock:
    mock = MagicMock()
    mock.add_credits = AsyncMock(return_value="txid")
    return mock


@pytest.fixture
def waiter() -> MagicMock:
    mock = MagicMock()
    mock.wait = AsyncMock(return_value=101)
    return mock


@pytest.fixture
def manager(daemon, account, config, ownership, source, store, funder, waiter):
    def build(cfg: SyncConfig | None = None) -> WalletCapacityManager:
        return WalletCapacityManager(
            daemon=daemon,
            account=account,
            config=cfg or config,
            ownership=ownership,
            source=source,
            store=store,
            funder=funder,
            waiter=waiter,
            guard=SpendGuard(),
        )

    return build


class TestEnsureCapacity:
    """Tests for the full capacity pass."""

    @pytest.mark.asyncio
    async def test_empty_source_does_nothing(
        self, manager, daemon, source, ownership, funder
    ) -> None:
        source.count_videos.return_value = 0
        report = await manager().ensure_capacity()

        assert report.plan is None
        ownership.ensure_ownership.assert_not_called()
        funder.add_credits.assert_not_called()
        daemon.utxo_list.assert_not_called()
        daemon.account_fund.assert_not_called()

    @pytest.mark.asyncio
    async def test_ownership_checked_before_balance(self, manager, daemon, ownership) -> None:
        calls: list[str] = []
        ownership.ensure_ownership.side_effect = lambda: calls.append("ownership")
        daemon.account_balance.side_effect = lambda *a: calls.append("balance") or Decimal("100")
        daemon.utxo_list.return_value = [utxo() for _ in range(40)]

        await manager().ensure_capacity()
        assert calls[:2] == ["ownership", "balance"]

    @pytest.mark.asyncio
    async def test_refill_sent_when_short(self, manager, daemon, source, funder) -> None:
        source.count_videos.return_value = 100
        daemon.account_balance.return_value = Decimal("0")
        daemon.utxo_list.return_value = [utxo() for _ in range(40)]

        report = await manager().ensure_capacity()
        funder.add_credits.assert_awaited_once_with(Decimal("11"))
        assert report.plan.refill == Decimal("11")

    @pytest.mark.asyncio
    async def test_published_records_count_as_allocated(
        self, manager, daemon, source, store, funder
    ) -> None:
        source.count_videos.return_value = 2
        for video_id in ("a", "b"):
            store.put_video(
                SyncedVideoRecord(video_id=video_id, published=True, metadata_version=2)
            )
        daemon.utxo_list.return_value = [utxo() for _ in range(40)]

        report = await manager().ensure_capacity()
        assert report.plan.unallocated == 0
        funder.add_credits.assert_not_called()

    @pytest.mark.asyncio
    async def test_holds_exclusive_guard(self, manager, daemon, ownership) -> None:
        mgr = manager()
        seen: list[bool] = []
        ownership.ensure_ownership.side_effect = lambda: seen.append(mgr.guard.exclusive_held)
        daemon.utxo_list.return_value = [utxo() for _ in range(40)]

        await mgr.ensure_capacity()
        assert seen == [True]
        assert not mgr.guard.exclusive_held

    @pytest.mark.asyncio
    async def test_claim_address_from_wallet(self, manager) -> None:
        report = await manager().ensure_capacity()
        assert report.claim_address == "bWalletAddress"


class TestClaimAddress:
    @pytest.mark.asyncio
    async def test_transfer_uses_client_address(self, manager, daemon, config) -> None:
        cfg = config.model_copy(
            update={
                "transfer_state": TransferState.PENDING,
                "client_publish_address": "bClientAddress",
            }
        )
        assert await manager(cfg).resolve_claim_address() == "bClientAddress"
        daemon.address_list.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_address_rejected(self, manager, daemon) -> None:
        daemon.address_list.return_value = [""]
        with pytest.raises(ConfigurationError, match="blank claim address"):
            await manager().resolve_claim_address()

    @pytest.mark.asyncio
    async def test_no_addresses(self, manager, daemon) -> None:
        daemon.address_list.return_value = []
        with pytest.raises(NoDaemonResponse):
            await manager().resolve_claim_address()


class TestEnsureUtxos:
    """Tests for output splitting."""

    @pytest.mark.asyncio
    async def test_no_resplit_at_lower_bound(self, manager, daemon, waiter) -> None:
        daemon.utxo_list.return_value = [utxo() for _ in range(36)]

        report = await manager().ensure_utxos()
        assert report.count == 36
        assert report.split_into == 0
        daemon.account_fund.assert_not_called()
        waiter.wait.assert_not_called()

    @pytest.mark.asyncio
    async def test_resplit_below_lower_bound(self, manager, daemon, account, waiter) -> None:
        daemon.utxo_list.return_value = [utxo() for _ in range(35)]
        daemon.account_balance.return_value = Decimal("100")

        report = await manager().ensure_utxos()
        daemon.account_fund.assert_awaited_once_with(
            account.id, account.id, Decimal("99.9"), 500, broadcast=True
        )
        assert report.split_into == 500
        assert report.waited
        waiter.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_split_count_follows_balance(self, manager, daemon) -> None:
        daemon.account_balance.return_value = Decimal("2.55")

        report = await manager().ensure_utxos()
        assert report.split_into == 25

    @pytest.mark.asyncio
    async def test_resplit_skips_wait_when_enough_confirmed(
        self, manager, daemon, waiter
    ) -> None:
        daemon.utxo_list.return_value = [utxo() for _ in range(20)]

        report = await manager().ensure_utxos()
        assert report.split_into > 0
        assert not report.waited
        waiter.wait.assert_not_called()

    @pytest.mark.asyncio
    async def test_waits_for_unconfirmed_outputs(self, manager, daemon, waiter) -> None:
        outputs = [utxo() for _ in range(10)] + [utxo(confirmations=0) for _ in range(30)]
        daemon.utxo_list.return_value = outputs

        report = await manager().ensure_utxos()
        assert report.count == 40
        assert report.confirmed_count == 10
        assert report.waited
        daemon.account_fund.assert_not_called()

    @pytest.mark.asyncio
    async def test_unusable_outputs_not_counted(self, manager, daemon) -> None:
        daemon.utxo_list.return_value = [
            utxo("0.001"),
            utxo(is_mine=False),
            utxo(type="support"),
            utxo("0.5"),
        ]

        report = await manager().ensure_utxos()
        assert report.count == 1

    @pytest.mark.asyncio
    async def test_missing_utxo_list(self, manager, daemon) -> None:
        daemon.utxo_list.return_value = None
        with pytest.raises(NoDaemonResponse):
            await manager().ensure_utxos()
