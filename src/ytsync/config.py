"""
Configuration for channel syncs.

Per-channel settings are plain pydantic models loaded from a JSON file;
endpoints and credentials come from the environment through pydantic-settings.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ytsync.constants import (
    BROADCAST_FEE,
    UTXO_DUST_THRESHOLD,
    UTXO_MAX_OUTPUTS,
    UTXO_SLACK_RATIO,
    UTXO_SPLIT_UNIT,
    UTXO_TARGET_COUNT,
    UTXO_WAIT_THRESHOLD,
)
from ytsync.models import FeeConfig, NetworkType, TransferState


class WalletPolicy(BaseModel):
    """Amounts and thresholds driving refills and output splitting."""

    publish_amount: Decimal = Decimal("0.01")
    estimated_max_tx_fee: Decimal = Decimal("0.1")
    channel_claim_amount: Decimal = Decimal("0.01")
    minimum_account_balance: Decimal = Decimal("1.0")
    minimum_refill_amount: Decimal = Decimal("1.0")
    legacy_upgrade_fee: Decimal = Decimal("0.001")
    # Added on top of the bid when topping up for a channel claim
    channel_bid_margin: Decimal = Decimal("0.3")
    refill_settle_seconds: float = Field(default=15.0, ge=0)

    utxo_target: int = Field(default=UTXO_TARGET_COUNT, ge=1)
    utxo_wait_threshold: int = Field(default=UTXO_WAIT_THRESHOLD, ge=0)
    utxo_max_outputs: int = Field(default=UTXO_MAX_OUTPUTS, ge=1)
    utxo_split_unit: Decimal = UTXO_SPLIT_UNIT
    utxo_dust: Decimal = UTXO_DUST_THRESHOLD
    broadcast_fee: Decimal = BROADCAST_FEE

    @property
    def utxo_slack(self) -> int:
        return int(UTXO_SLACK_RATIO * self.utxo_target)


class SyncConfig(BaseModel):
    """Configuration for syncing one source channel."""

    source_channel_id: str
    channel_name: str = ""
    # Claim id recorded for this channel, if any
    channel_claim_id: str = ""
    transfer_state: TransferState = TransferState.NONE
    client_publish_address: str = ""

    network: NetworkType = NetworkType.MAINNET
    videos_limit: int = Field(default=1000, ge=0)
    max_video_size_mb: int = Field(default=0, ge=0, description="0 disables the size limit")
    max_video_length_hours: float = Field(
        default=0.0, ge=0.0, description="0 disables the length limit"
    )
    refill: Decimal = Field(default=Decimal("0"), ge=0, description="Extra top-up in LBC")
    upgrade_metadata: bool = False
    reprocess: bool = False

    download_dir: Path = Path("downloads")
    claim_bid: Decimal = Decimal("0.01")
    fee: FeeConfig | None = None
    # Extra line appended to long descriptions, keyed by channel claim id
    description_notes: dict[str, str] = Field(default_factory=dict)

    wallet: WalletPolicy = Field(default_factory=WalletPolicy)

    @model_validator(mode="after")
    def validate_transfer(self) -> SyncConfig:
        if self.transfer_state != TransferState.NONE and not self.client_publish_address:
            raise ValueError(
                f"transfer_state={self.transfer_state.value} requires client_publish_address"
            )
        return self

    @property
    def should_transfer(self) -> bool:
        return self.transfer_state != TransferState.NONE

    @property
    def max_video_size_bytes(self) -> int:
        return self.max_video_size_mb * 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    network: NetworkType = NetworkType.MAINNET

    lbrynet_url: str = "http://127.0.0.1:5279"
    lbrycrd_url: str = "http://127.0.0.1:9245"
    lbrycrd_user: str = "lbry"
    lbrycrd_password: str = ""

    youtube_api_key: str = ""
    youtube_api_url: str = "https://www.googleapis.com/youtube/v3"

    thumbnail_mirror_url: str = ""
    thumbnail_endpoint: str = "https://thumbnails.lbry.com/"

    data_dir: Path = Path("data")
    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings()
