"""
Channel sync orchestration.

Flow:
1. Capacity pass (ownership, refill, output splitting) under the exclusive guard
2. Per video: reprocess if already published, else download, mirror the
   thumbnail and publish

A capacity failure aborts the whole run; item failures are recorded and the
run moves on.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from ytsync.config import SyncConfig
from ytsync.constants import CURRENT_METADATA_VERSION, MAX_FAILURE_REASON_LENGTH
from ytsync.errors import StageError, UnsuitableContent
from ytsync.media.download import VideoDownloadPipeline
from ytsync.media.thumbnails import ThumbnailMirror, best_thumbnail
from ytsync.models import SyncedVideoRecord, SyncSummary, VideoItem
from ytsync.publishing.channel import ChannelOwnershipManager
from ytsync.publishing.publish import PublishEngine
from ytsync.publishing.reprocess import ReprocessEngine
from ytsync.sources.base import SourcePlatform
from ytsync.store import RecordStore
from ytsync.wallet.capacity import CapacityReport, WalletCapacityManager
from ytsync.wallet.locks import SpendGuard


@dataclass
class SyncResult:
    capacity: CapacityReport | None = None
    published: dict[str, SyncSummary] = field(default_factory=dict)
    reprocessed: dict[str, SyncSummary] = field(default_factory=dict)
    failed: dict[str, StageError] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


class ChannelSync:
    def __init__(
        self,
        config: SyncConfig,
        source: SourcePlatform,
        store: RecordStore,
        capacity: WalletCapacityManager,
        ownership: ChannelOwnershipManager,
        downloads: VideoDownloadPipeline,
        mirror: ThumbnailMirror,
        publisher: PublishEngine,
        reprocessor: ReprocessEngine,
        guard: SpendGuard,
        concurrency: int = 1,
    ):
        self.config = config
        self.source = source
        self.store = store
        self.capacity = capacity
        self.ownership = ownership
        self.downloads = downloads
        self.mirror = mirror
        self.publisher = publisher
        self.reprocessor = reprocessor
        self.guard = guard
        self.concurrency = max(1, concurrency)

    async def run(self) -> SyncResult:
        result = SyncResult()
        result.capacity = await self.capacity.ensure_capacity()
        if result.capacity.plan is None:
            logger.info("Nothing to sync")
            return result

        videos = await self.source.list_videos(
            self.config.source_channel_id, self.config.videos_limit
        )
        if self.config.reprocess:
            listed = {v.id for v in videos}
            for record in self.store.videos():
                if record.published and record.video_id not in listed:
                    videos.append(
                        VideoItem.record_only(record.video_id, self.config.source_channel_id)
                    )

        semaphore = asyncio.Semaphore(self.concurrency)

        async def run_item(item: VideoItem) -> None:
            async with semaphore:
                await self._run_item(item, result)

        # Let every item finish before surfacing an unexpected error
        outcomes = await asyncio.gather(
            *(run_item(item) for item in videos), return_exceptions=True
        )
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        if errors:
            logger.error(f"Sync aborted: {len(errors)} item(s) raised unexpectedly")
            raise errors[0]
        logger.info(
            f"Sync finished: {len(result.published)} published, "
            f"{len(result.reprocessed)} reprocessed, {len(result.failed)} failed, "
            f"{len(result.skipped)} skipped"
        )
        return result

    async def _run_item(self, item: VideoItem, result: SyncResult) -> None:
        record = self.store.get_video(item.id)
        if record is not None and record.published and not self.config.reprocess:
            result.skipped.append(item.id)
            return
        if record is not None and record.unsuitable:
            logger.debug(f"Skipping unsuitable video {item.id}: {record.failure_reason}")
            result.skipped.append(item.id)
            return
        if record is not None and not record.published and not item.mocked:
            logger.debug(f"Retrying previously failed video {item.id}")

        try:
            summary = await self.sync_item(item, record)
        except StageError as e:
            logger.error(f"{item.id_and_num()}: {e}")
            result.failed[item.id] = e
            if record is None or not record.published:
                self._record_failure(item, e)
            return

        if record is not None and record.published:
            result.reprocessed[item.id] = summary
        else:
            result.published[item.id] = summary
        self.store.put_video(
            SyncedVideoRecord(
                video_id=item.id,
                published=True,
                claim_id=summary.claim_id,
                claim_name=summary.claim_name,
                size=item.size or (record.size if record else 0),
                metadata_version=CURRENT_METADATA_VERSION,
            )
        )

    def _record_failure(self, item: VideoItem, error: StageError) -> None:
        self.store.put_video(
            SyncedVideoRecord(
                video_id=item.id,
                published=False,
                failure_reason=str(error)[:MAX_FAILURE_REASON_LENGTH],
                unsuitable=isinstance(error.cause, UnsuitableContent),
            )
        )

    async def sync_item(
        self, item: VideoItem, record: SyncedVideoRecord | None = None
    ) -> SyncSummary:
        """
        Sync one video.

        Raises:
            StageError: Labelled with the stage that failed
        """
        if self.config.reprocess and record is not None and record.published:
            try:
                async with self.guard.shared():
                    return await self.reprocessor.reprocess(
                        item, record, self.ownership.claim_id
                    )
            except Exception as e:
                raise StageError("reprocess error", e) from e

        if item.mocked:
            raise StageError("download error", UnsuitableContent("record-only video"))
        return await self.download_and_publish(item)

    async def download_and_publish(self, item: VideoItem) -> SyncSummary:
        try:
            try:
                media_path = await self.downloads.fetch_with_fallback(item)
            except Exception as e:
                raise StageError("download error", e) from e
            logger.debug(f"Downloaded {item.id}")

            try:
                thumbnail = best_thumbnail(item.thumbnails)
                item.thumbnail_url = await self.mirror.mirror(thumbnail.url, item.id)
            except Exception as e:
                raise StageError("thumbnail error", e) from e
            logger.debug(f"Created thumbnail for {item.id}")

            try:
                async with self.guard.shared():
                    return await self.publisher.publish(
                        item,
                        media_path,
                        self.ownership.claim_id,
                        self.capacity.claim_address,
                    )
            except Exception as e:
                raise StageError("publish error", e) from e
        finally:
            self.downloads.delete(item)
