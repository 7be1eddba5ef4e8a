"""
Source platform interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ytsync.models import ChannelSnippet, VideoItem


class SourcePlatform(ABC):
    """
    Read-only access to the source video platform.
    """

    @abstractmethod
    async def count_videos(self, channel_id: str) -> int:
        """Number of videos published on the channel"""

    @abstractmethod
    async def get_channel_snippet(self, channel_id: str) -> ChannelSnippet:
        """Channel title, description and branding"""

    @abstractmethod
    async def list_videos(self, channel_id: str, limit: int) -> list[VideoItem]:
        """Channel videos, newest first, at most limit of them"""

    @abstractmethod
    async def get_video(self, video_id: str) -> VideoItem | None:
        """Full metadata for one video"""

    async def close(self) -> None:
        pass
