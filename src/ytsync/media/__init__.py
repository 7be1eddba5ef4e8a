"""
Source media: video downloads and thumbnail mirroring.
"""

from ytsync.media.download import (
    MediaDownloader,
    MediaFormat,
    MediaInfo,
    VideoDownloadPipeline,
    YtDlpCliFallback,
    YtDlpDownloader,
    slugify_title,
)
from ytsync.media.thumbnails import HttpThumbnailMirror, ThumbnailMirror, best_thumbnail

__all__ = [
    "HttpThumbnailMirror",
    "MediaDownloader",
    "MediaFormat",
    "MediaInfo",
    "ThumbnailMirror",
    "VideoDownloadPipeline",
    "YtDlpCliFallback",
    "YtDlpDownloader",
    "best_thumbnail",
    "slugify_title",
]
