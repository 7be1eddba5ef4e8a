"""
Persisted sync records.

One JSON document per source channel holds the channel's claim id and the
state of every video synced from it.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field

from ytsync.models import ChannelRecord, RecordStats, SyncedVideoRecord


class RecordStore(ABC):
    @abstractmethod
    def get_channel(self) -> ChannelRecord:
        """Channel record (created empty if missing)"""

    @abstractmethod
    def set_channel_claim_id(self, claim_id: str) -> None:
        """Record the claim id of the channel claim"""

    @abstractmethod
    def get_video(self, video_id: str) -> SyncedVideoRecord | None:
        """Record for one video, None if never synced"""

    @abstractmethod
    def put_video(self, record: SyncedVideoRecord) -> None:
        """Insert or replace a video record"""

    @abstractmethod
    def videos(self) -> list[SyncedVideoRecord]:
        """All video records"""

    def record_stats(self) -> RecordStats:
        stats = RecordStats()
        for record in self.videos():
            if record.published:
                stats.published += 1
                if record.needs_metadata_upgrade:
                    stats.not_upgraded += 1
            else:
                stats.failed += 1
        return stats


class _ChannelDocument(BaseModel):
    channel: ChannelRecord
    videos: dict[str, SyncedVideoRecord] = Field(default_factory=dict)


class JsonRecordStore(RecordStore):
    """
    Record store backed by a JSON file.

    Every write replaces the whole file through a temporary sibling.
    """

    def __init__(self, path: Path, source_channel_id: str):
        self.path = path
        self.source_channel_id = source_channel_id
        self._doc = self._load()

    def _load(self) -> _ChannelDocument:
        if not self.path.exists():
            return _ChannelDocument(channel=ChannelRecord(source_channel_id=self.source_channel_id))
        doc = _ChannelDocument.model_validate_json(self.path.read_text(encoding="utf-8"))
        if doc.channel.source_channel_id != self.source_channel_id:
            raise ValueError(
                f"{self.path} belongs to channel {doc.channel.source_channel_id}, "
                f"not {self.source_channel_id}"
            )
        logger.debug(f"Loaded {len(doc.videos)} video records from {self.path}")
        return doc

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(
            json.dumps(self._doc.model_dump(mode="json"), indent=2), encoding="utf-8"
        )
        os.replace(tmp, self.path)

    def get_channel(self) -> ChannelRecord:
        return self._doc.channel.model_copy()

    def set_channel_claim_id(self, claim_id: str) -> None:
        self._doc.channel.claim_id = claim_id
        self._save()

    def get_video(self, video_id: str) -> SyncedVideoRecord | None:
        record = self._doc.videos.get(video_id)
        return record.model_copy() if record else None

    def put_video(self, record: SyncedVideoRecord) -> None:
        self._doc.videos[record.video_id] = record.model_copy()
        self._save()

    def videos(self) -> list[SyncedVideoRecord]:
        return [r.model_copy() for r in self._doc.videos.values()]
