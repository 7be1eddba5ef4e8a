"""
Publishing new stream claims.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

from loguru import logger

from ytsync.backends.base import WalletDaemon
from ytsync.constants import LICENSE
from ytsync.models import FeeConfig, SyncSummary, VideoItem
from ytsync.publishing.metadata import (
    abbreviated_description,
    fee_params,
    metadata_params,
    resolve_metadata,
)
from ytsync.publishing.namer import Namer
from ytsync.publishing.tags import TagSanitizer


class PublishEngine:
    def __init__(
        self,
        daemon: WalletDaemon,
        namer: Namer,
        sanitizer: TagSanitizer,
        bid: Decimal,
        fee: FeeConfig | None = None,
        description_notes: dict[str, str] | None = None,
    ):
        self.daemon = daemon
        self.namer = namer
        self.sanitizer = sanitizer
        self.bid = bid
        self.fee = fee
        self.description_notes = description_notes or {}

    def build_options(
        self, item: VideoItem, channel_claim_id: str, claim_address: str
    ) -> dict[str, Any]:
        languages, locations, tags = resolve_metadata(item, self.sanitizer)
        options: dict[str, Any] = {
            "title": item.title,
            "description": abbreviated_description(
                item, channel_claim_id, self.description_notes
            ),
            "claim_address": claim_address,
            "thumbnail_url": item.thumbnail_url,
            "license": LICENSE,
            "release_time": item.release_time,
            "channel_id": channel_claim_id,
            **metadata_params(languages, locations, tags),
            **fee_params(self.fee),
        }
        return options

    async def publish(
        self,
        item: VideoItem,
        media_path: Path,
        channel_claim_id: str,
        claim_address: str,
    ) -> SyncSummary:
        options = self.build_options(item, channel_claim_id, claim_address)
        output = await self.namer.publish(
            self.daemon, item.title, item.id, media_path, self.bid, options
        )
        logger.info(f"Published {item.id} as {output.name} ({output.claim_id})")
        return SyncSummary(claim_id=output.claim_id, claim_name=output.name)
