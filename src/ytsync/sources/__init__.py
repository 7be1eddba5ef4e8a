"""
Source platform collaborators.
"""

from ytsync.sources.base import SourcePlatform
from ytsync.sources.youtube import YouTubeDataAPI, video_from_resource

__all__ = [
    "SourcePlatform",
    "YouTubeDataAPI",
    "video_from_resource",
]
