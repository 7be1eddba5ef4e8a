"""
Reprocessing: updating published stream claims in place.

Media is never downloaded again; the stream size has to come from the claim
itself or from the persisted record.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from loguru import logger

from ytsync.backends.base import Claim, WalletDaemon
from ytsync.constants import LICENSE, STREAM_HEIGHT, STREAM_WIDTH
from ytsync.errors import AmbiguousClaim, ClaimNotFound, MustRepublish, NoThumbnail
from ytsync.media.thumbnails import ThumbnailMirror, best_thumbnail
from ytsync.models import FeeConfig, SyncedVideoRecord, SyncSummary, VideoItem
from ytsync.publishing.metadata import (
    abbreviated_description,
    duration_seconds,
    fee_params,
    metadata_params,
    resolve_metadata,
)
from ytsync.publishing.tags import TagSanitizer

SizePolicy = Callable[[Claim, SyncedVideoRecord], int | None]


def size_from_claim(claim: Claim, record: SyncedVideoRecord) -> int | None:
    return claim.stream_size


def size_from_record(claim: Claim, record: SyncedVideoRecord) -> int | None:
    return record.size if record.size > 0 else None


SIZE_POLICIES: tuple[SizePolicy, ...] = (size_from_claim, size_from_record)


def resolve_size(
    claim: Claim,
    record: SyncedVideoRecord,
    policies: tuple[SizePolicy, ...] = SIZE_POLICIES,
) -> int:
    for policy in policies:
        size = policy(claim, record)
        if size is not None:
            return size
    raise MustRepublish("the video must be republished as we can't get the right size")


class ReprocessEngine:
    def __init__(
        self,
        daemon: WalletDaemon,
        mirror: ThumbnailMirror,
        sanitizer: TagSanitizer,
        fee: FeeConfig | None = None,
        description_notes: dict[str, str] | None = None,
    ):
        self.daemon = daemon
        self.mirror = mirror
        self.sanitizer = sanitizer
        self.fee = fee
        self.description_notes = description_notes or {}

    async def find_claim(self, claim_id: str) -> Claim:
        claims = await self.daemon.claim_search(claim_id)
        if not claims:
            raise ClaimNotFound("cannot reprocess: no claim found for this video")
        if len(claims) > 1:
            raise AmbiguousClaim(f"cannot reprocess: too many claims. claimID: {claim_id}")
        return claims[0]

    async def resolve_thumbnail(self, item: VideoItem, claim: Claim) -> str:
        if claim.has_thumbnail:
            return self.mirror.public_url(item.id)
        if item.mocked:
            raise NoThumbnail("could not find thumbnail for mocked video")
        thumbnail = best_thumbnail(item.thumbnails)
        return await self.mirror.mirror(thumbnail.url, item.id)

    async def reprocess(
        self, item: VideoItem, record: SyncedVideoRecord, channel_claim_id: str
    ) -> SyncSummary:
        claim = await self.find_claim(record.claim_id)
        languages, locations, tags = resolve_metadata(item, self.sanitizer)
        item.thumbnail_url = await self.resolve_thumbnail(item, claim)

        try:
            item.size = resolve_size(claim, record)
        except MustRepublish:
            logger.info(f"{item.id}: cannot update in place, the video must be republished")
            raise

        options: dict[str, Any] = {
            "thumbnail_url": item.thumbnail_url,
            "author": "",
            "license": LICENSE,
            "channel_id": channel_claim_id,
            "height": STREAM_HEIGHT,
            "width": STREAM_WIDTH,
            **metadata_params(languages, locations, tags),
            **fee_params(self.fee),
        }

        if item.mocked:
            output = await self.daemon.stream_update(record.claim_id, options, item.size)
        else:
            options.update(
                title=item.title,
                description=abbreviated_description(
                    item, channel_claim_id, self.description_notes
                ),
                duration=duration_seconds(item.duration or ""),
                release_time=item.release_time,
            )
            output = await self.daemon.stream_update(
                record.claim_id, options, item.size, clear=True
            )

        logger.info(f"Reprocessed {item.id} ({output.claim_id})")
        return SyncSummary(claim_id=output.claim_id, claim_name=output.name)
