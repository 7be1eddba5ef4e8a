"""
Source media download.

The primary path negotiates a format and retries smaller formats when a file
is over the size limit. The fallback path hands the whole job to the yt-dlp
command-line tool once, without format negotiation.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yt_dlp
from loguru import logger

from ytsync.constants import (
    ALLOWED_CONTAINERS,
    ALLOWED_VIDEO_CODECS,
    FALLBACK_FORMAT,
    MAX_DOWNLOAD_ATTEMPTS,
    MAX_SLUG_LENGTH,
    MIN_SLUG_LENGTH,
    WATCH_URL,
)
from ytsync.errors import (
    ContentTooLong,
    DownloadError,
    FallbackExhausted,
    FormatsExhausted,
    NoCompatibleFormat,
    SizeExceeded,
    UnsuitableContent,
)
from ytsync.models import VideoItem

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]+")

# Length limits below this many hours count as unset
LENGTH_LIMIT_EPSILON = 0.01


def slugify_title(title: str, fallback: str) -> str:
    """
    File name stem for a video title.

    Whole words are added while the name stays within MAX_SLUG_LENGTH; a name
    still shorter than MIN_SLUG_LENGTH is topped up with a cut-off word.
    """
    chunks = _NON_ALNUM.sub("-", title).strip("-").lower().split("-")

    name = chunks[0][:MAX_SLUG_LENGTH]
    for chunk in chunks[1:]:
        candidate = f"{name}-{chunk}"
        if len(candidate) > MAX_SLUG_LENGTH:
            if len(name) < MIN_SLUG_LENGTH:
                name = candidate[:MAX_SLUG_LENGTH]
            break
        name = candidate
    return name or fallback


@dataclass
class MediaFormat:
    format_id: str
    ext: str
    vcodec: str
    acodec: str = "none"
    height: int = 0
    tbr: float = 0.0
    filesize: int | None = None

    @property
    def compatible(self) -> bool:
        return (
            self.ext in ALLOWED_CONTAINERS
            and self.vcodec.lower().startswith(ALLOWED_VIDEO_CODECS)
            and self.acodec != "none"
        )


@dataclass
class MediaInfo:
    duration: float
    formats: list[MediaFormat] = field(default_factory=list)


class MediaDownloader(ABC):
    """Primary download path."""

    @abstractmethod
    async def probe(self, video_id: str) -> MediaInfo:
        """Duration and available encodings"""

    @abstractmethod
    async def download(self, video_id: str, media_format: MediaFormat, path: Path) -> None:
        """Write one format of the video to path"""


class FallbackDownloader(ABC):
    """Single-shot downloader used when the primary path fails."""

    @abstractmethod
    async def download(self, video_id: str, path: Path) -> None:
        """Write the video to path (the extension may be replaced)"""


def _format_from_info(raw: dict[str, Any]) -> MediaFormat:
    return MediaFormat(
        format_id=str(raw.get("format_id", "")),
        ext=raw.get("ext") or "",
        vcodec=raw.get("vcodec") or "none",
        acodec=raw.get("acodec") or "none",
        height=int(raw.get("height") or 0),
        tbr=float(raw.get("tbr") or 0.0),
        filesize=raw.get("filesize") or raw.get("filesize_approx"),
    )


class YtDlpDownloader(MediaDownloader):
    """
    Primary downloader using the yt-dlp library.

    yt-dlp is blocking, so every call runs in a worker thread.
    """

    def __init__(self, options: dict[str, Any] | None = None):
        self.options = {"quiet": True, "noprogress": True, "no_warnings": True, **(options or {})}

    def _extract(self, video_id: str) -> dict[str, Any]:
        with yt_dlp.YoutubeDL({**self.options, "skip_download": True}) as ydl:
            info = ydl.extract_info(WATCH_URL + video_id, download=False)
        if info is None:
            raise DownloadError(f"yt-dlp returned no info for {video_id}")
        return info

    async def probe(self, video_id: str) -> MediaInfo:
        try:
            info = await asyncio.to_thread(self._extract, video_id)
        except yt_dlp.utils.DownloadError as e:
            raise DownloadError(str(e)) from e
        return MediaInfo(
            duration=float(info.get("duration") or 0.0),
            formats=[_format_from_info(f) for f in info.get("formats") or []],
        )

    def _download(self, video_id: str, media_format: MediaFormat, path: Path) -> None:
        options = {
            **self.options,
            "format": media_format.format_id,
            "outtmpl": str(path),
            "overwrites": True,
        }
        with yt_dlp.YoutubeDL(options) as ydl:
            ydl.download([WATCH_URL + video_id])

    async def download(self, video_id: str, media_format: MediaFormat, path: Path) -> None:
        try:
            await asyncio.to_thread(self._download, video_id, media_format, path)
        except yt_dlp.utils.DownloadError as e:
            raise DownloadError(str(e)) from e


class YtDlpCliFallback(FallbackDownloader):
    """
    Fallback downloader running the yt-dlp command-line tool.
    """

    def __init__(self, executable: str = "yt-dlp", fmt: str = FALLBACK_FORMAT):
        self.executable = executable
        self.fmt = fmt

    def command(self, video_id: str, path: Path) -> list[str]:
        return [
            self.executable,
            video_id,
            "--no-progress",
            f"-f{self.fmt}",
            "-o",
            f"{path.with_suffix('')}.%(ext)s",
            "--merge-output-format",
            "mp4",
        ]

    async def download(self, video_id: str, path: Path) -> None:
        if shutil.which(self.executable) is None:
            raise DownloadError(f"{self.executable} not found on PATH")

        cmd = self.command(video_id, path)
        logger.info("Running fallback downloader and waiting for it to finish...")
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        output, _ = await proc.communicate()
        text = output.decode(errors="replace").strip()
        logger.debug(text)
        if proc.returncode != 0:
            logger.error(f"Fallback downloader finished with error: {text[-500:]}")
            raise DownloadError(f"{self.executable} exited with status {proc.returncode}")


class VideoDownloadPipeline:
    """
    Fetches source media into <download_dir>/<video id>/<slug>.mp4.
    """

    def __init__(
        self,
        download_dir: Path,
        downloader: MediaDownloader,
        fallback: FallbackDownloader | None = None,
        max_size: int = 0,
        max_length_hours: float = 0.0,
    ):
        self.download_dir = download_dir
        self.downloader = downloader
        self.fallback = fallback
        self.max_size = max_size
        self.max_length_hours = max_length_hours

    def video_dir(self, item: VideoItem) -> Path:
        return self.download_dir / item.id

    def target_path(self, item: VideoItem) -> Path:
        return self.video_dir(item) / f"{slugify_title(item.title, item.id)}.mp4"

    def downloaded_path(self, item: VideoItem) -> Path | None:
        """Downloaded file for the item, whatever extension it ended up with."""
        target = self.target_path(item)
        if target.exists():
            return target
        video_dir = self.video_dir(item)
        if not video_dir.is_dir():
            return None
        for candidate in sorted(video_dir.iterdir()):
            if candidate.is_file() and candidate.stem == target.stem:
                return candidate
        return None

    def delete(self, item: VideoItem) -> None:
        """Remove downloaded media; failures are logged and ignored."""
        path = self.downloaded_path(item)
        if path is None:
            return
        try:
            path.unlink()
            logger.debug(f"{item.id} deleted from disk ({path})")
        except OSError as e:
            logger.error(f"delete error: {e}")

    def select_formats(self, formats: list[MediaFormat]) -> list[MediaFormat]:
        """Compatible formats, best first."""
        compatible = [f for f in formats if f.compatible]
        return sorted(compatible, key=lambda f: (f.height, f.tbr), reverse=True)

    @staticmethod
    def attempt_order(format_count: int) -> list[int]:
        """
        Format indexes to try: in order, at most MAX_DOWNLOAD_ATTEMPTS of them,
        with the last allowed attempt going to the last (smallest) format.
        """
        order = list(range(min(format_count, MAX_DOWNLOAD_ATTEMPTS)))
        if format_count >= MAX_DOWNLOAD_ATTEMPTS:
            order[MAX_DOWNLOAD_ATTEMPTS - 1] = format_count - 1
        return order

    async def fetch(self, item: VideoItem) -> Path:
        """
        Download the item through the primary path.

        Raises:
            NoCompatibleFormat / ContentTooLong: The item can never be synced
            FormatsExhausted: Every attempted format was over the size limit
            DownloadError: A download attempt failed
        """
        path = self.target_path(item)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            item.size = path.stat().st_size
            logger.debug(f"{item.id} already exists at {path}")
            return path

        info = await self.downloader.probe(item.id)
        formats = self.select_formats(info.formats)
        if not formats:
            raise NoCompatibleFormat("no compatible format available for this video")
        if (
            self.max_length_hours > LENGTH_LIMIT_EPSILON
            and info.duration / 3600 > self.max_length_hours
        ):
            raise ContentTooLong("video is too long to process")

        oversized: list[SizeExceeded] = []
        for index in self.attempt_order(len(formats)):
            media_format = formats[index]
            logger.debug(f"Downloading {item.id} in format {media_format.format_id}")
            try:
                await self.downloader.download(item.id, media_format, path)
                size = path.stat().st_size
            except (DownloadError, OSError) as e:
                self.delete(item)
                if isinstance(e, DownloadError):
                    raise
                raise DownloadError(str(e)) from e

            item.size = size
            if self.max_size > 0 and size > self.max_size:
                self.delete(item)
                oversized.append(SizeExceeded(media_format.format_id, size, self.max_size))
                logger.info(f"{item.id}: {oversized[-1]}, trying next format")
                continue
            return path

        item.size = None
        raise FormatsExhausted(oversized)

    async def fetch_with_fallback(self, item: VideoItem) -> Path:
        """
        Primary path, then the fallback tool once.

        Raises:
            UnsuitableContent: Not retried through the fallback
            FallbackExhausted: Both paths failed, or the fallback file is over max_size
        """
        try:
            return await self.fetch(item)
        except UnsuitableContent:
            raise
        except Exception as primary:
            if self.fallback is None:
                raise
            logger.error(f"standard downloader failed: {primary}. Trying fallback downloader")
            path = self.target_path(item)
            try:
                await self.fallback.download(item.id, path)
                downloaded = self.downloaded_path(item)
                if downloaded is None:
                    raise DownloadError("could not find any downloaded videos")
                size = downloaded.stat().st_size
                if self.max_size > 0 and size > self.max_size:
                    raise SizeExceeded("fallback", size, self.max_size)
            except Exception as fallback_error:
                logger.error(f"fallback downloader failed: {fallback_error}")
                self.delete(item)
                item.size = None
                raise FallbackExhausted(primary, fallback_error) from primary
            item.size = size
            return downloaded
