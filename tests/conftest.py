"""
Shared fixtures for ytsync tests.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from ytsync.backends.base import Account, ClaimOutput, DaemonStatus, WalletDaemon
from ytsync.config import SyncConfig, WalletPolicy
from ytsync.media.thumbnails import ThumbnailMirror
from ytsync.models import ChannelSnippet, Thumbnail, VideoItem
from ytsync.sources.base import SourcePlatform
from ytsync.store import JsonRecordStore

SOURCE_CHANNEL = "UCsourcechannel"
CHANNEL_CLAIM = "c0ffee00c0ffee00c0ffee00c0ffee00c0ffee00"


@pytest.fixture
def account() -> Account:
    return Account(id="acc-default", ledger="lbc_mainnet", is_default=True)


@pytest.fixture
def config() -> SyncConfig:
    return SyncConfig(
        source_channel_id=SOURCE_CHANNEL,
        channel_name="@mychannel",
        wallet=WalletPolicy(refill_settle_seconds=0),
    )


@pytest.fixture
def store(tmp_path: Path) -> JsonRecordStore:
    return JsonRecordStore(tmp_path / "records.json", SOURCE_CHANNEL)


@pytest.fixture
def daemon() -> MagicMock:
    """Wallet daemon mock with a funded, synced wallet."""
    mock = MagicMock(spec=WalletDaemon)
    mock.account_balance.return_value = Decimal("100")
    mock.address_list.return_value = ["bWalletAddress"]
    mock.address_unused.return_value = "bUnusedAddress"
    mock.utxo_list.return_value = []
    mock.account_fund.return_value = {"txid": "ab" * 32}
    mock.channel_list.return_value = []
    mock.channel_create.return_value = ClaimOutput(claim_id=CHANNEL_CLAIM, name="@mychannel")
    mock.channel_update.return_value = ClaimOutput(claim_id=CHANNEL_CLAIM, name="@mychannel")
    mock.status.return_value = DaemonStatus(blocks=100, blocks_behind=0)
    return mock


@pytest.fixture
def source() -> MagicMock:
    mock = MagicMock(spec=SourcePlatform)
    mock.count_videos.return_value = 10
    mock.list_videos.return_value = []
    mock.get_channel_snippet.return_value = ChannelSnippet(
        channel_id=SOURCE_CHANNEL,
        title="My Channel",
        description="Videos about things",
        thumbnails={"high": Thumbnail(url="https://img.example/high.jpg")},
    )
    return mock


@pytest.fixture
def mirror() -> MagicMock:
    mock = MagicMock(spec=ThumbnailMirror)
    mock.mirror = AsyncMock(side_effect=lambda url, key: f"https://thumbs.example/{key}")
    mock.public_url.side_effect = lambda key: f"https://thumbs.example/{key}"
    return mock


def make_item(video_id: str = "vid00000001", **kwargs) -> VideoItem:
    defaults = {
        "channel_id": SOURCE_CHANNEL,
        "title": "Hello, World! 2024",
        "description": "A short description",
        "duration": "PT3M10S",
        "thumbnails": {"high": Thumbnail(url=f"https://img.example/{video_id}.jpg")},
    }
    defaults.update(kwargs)
    return VideoItem(id=video_id, **defaults)
