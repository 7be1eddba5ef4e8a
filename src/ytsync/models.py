"""
Core data models using Pydantic for validation and serialization.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ytsync.constants import CURRENT_METADATA_VERSION, LEDGER_MAINNET, LEDGER_REGTEST


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    REGTEST = "regtest"

    @property
    def ledger(self) -> str:
        return LEDGER_REGTEST if self is NetworkType.REGTEST else LEDGER_MAINNET


class TransferState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    COMPLETE = "complete"


class Location(BaseModel):
    country: str | None = None
    latitude: str | None = None
    longitude: str | None = None

    def to_rpc(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


class FeeConfig(BaseModel):
    """Paid-fee policy attached to published streams."""

    amount: Decimal
    currency: str = "LBC"
    address: str

    def to_rpc(self) -> dict[str, Any]:
        return {
            "fee_amount": str(self.amount),
            "fee_currency": self.currency,
            "fee_address": self.address,
        }


class Thumbnail(BaseModel):
    url: str
    width: int | None = None
    height: int | None = None


class ChannelSnippet(BaseModel):
    """Branding of the source channel, as used to build the channel claim."""

    channel_id: str
    title: str
    description: str = ""
    thumbnails: dict[str, Thumbnail] = Field(default_factory=dict)
    banner_url: str | None = None
    default_language: str | None = None
    country: str | None = None


class VideoItem(BaseModel):
    """
    A single source video flowing through the pipeline.

    Record-only (mocked) items carry just the ids; they can be reprocessed
    but never downloaded or published.
    """

    id: str
    channel_id: str
    title: str = ""
    description: str = ""
    published_at: datetime = Field(default_factory=lambda: datetime.fromtimestamp(0, tz=UTC))
    playlist_position: int = 0
    duration: str | None = None  # ISO-8601, e.g. PT1H2M3S
    default_language: str | None = None
    tags: list[str] = Field(default_factory=list)
    category_id: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    thumbnails: dict[str, Thumbnail] = Field(default_factory=dict)
    mocked: bool = False

    # Filled in as the item moves through the pipeline
    size: int | None = None
    thumbnail_url: str | None = None

    @classmethod
    def record_only(cls, video_id: str, channel_id: str) -> VideoItem:
        return cls(id=video_id, channel_id=channel_id, mocked=True)

    @property
    def release_time(self) -> int:
        if self.mocked:
            return 0
        return int(self.published_at.timestamp())

    def id_and_num(self) -> str:
        return f"{self.id} ({self.playlist_position} in channel)"


class SyncedVideoRecord(BaseModel):
    """Persisted sync state for one source video."""

    video_id: str
    published: bool = False
    claim_id: str = ""
    claim_name: str = ""
    size: int = 0
    metadata_version: int = 0
    failure_reason: str = ""
    # Never retried: no compatible format, or longer than allowed
    unsuitable: bool = False

    @property
    def needs_metadata_upgrade(self) -> bool:
        return self.published and self.metadata_version < CURRENT_METADATA_VERSION


class ChannelRecord(BaseModel):
    """Persisted state for one source channel."""

    source_channel_id: str
    claim_id: str = ""


class SyncSummary(BaseModel):
    claim_id: str
    claim_name: str


class RecordStats(BaseModel):
    published: int = 0
    failed: int = 0
    not_upgraded: int = 0

    @property
    def allocated(self) -> int:
        return self.published + self.failed
