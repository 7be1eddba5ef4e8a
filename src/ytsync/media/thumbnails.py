"""
Thumbnail selection and mirroring.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx
from loguru import logger

from ytsync.errors import NoThumbnail
from ytsync.models import Thumbnail

# Best first
THUMBNAIL_PREFERENCE = ("maxres", "standard", "high", "medium", "default")


def best_thumbnail(thumbnails: dict[str, Thumbnail]) -> Thumbnail:
    for key in THUMBNAIL_PREFERENCE:
        if key in thumbnails:
            return thumbnails[key]
    if thumbnails:
        return next(iter(thumbnails.values()))
    raise NoThumbnail("no thumbnail available")


class ThumbnailMirror(ABC):
    """
    Copies source images to storage the publishing platform can serve.
    """

    @abstractmethod
    async def mirror(self, url: str, key: str) -> str:
        """Mirror the image at url under key, returns the public URL"""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Public URL of an image mirrored earlier under key"""

    async def close(self) -> None:
        pass


class HttpThumbnailMirror(ThumbnailMirror):
    """
    Mirror that fetches the image and PUTs it to an upload endpoint.
    """

    def __init__(
        self,
        upload_url: str,
        public_endpoint: str,
        client: httpx.AsyncClient | None = None,
    ):
        self.upload_url = upload_url.rstrip("/")
        self.public_endpoint = public_endpoint
        self.client = client or httpx.AsyncClient(timeout=60.0, follow_redirects=True)

    def public_url(self, key: str) -> str:
        return f"{self.public_endpoint}{key}"

    async def mirror(self, url: str, key: str) -> str:
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            content_type = response.headers.get("content-type", "image/jpeg")
            upload = await self.client.put(
                f"{self.upload_url}/{key}",
                content=response.content,
                headers={"Content-Type": content_type},
            )
            upload.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to mirror thumbnail {url}: {e}")
            raise
        logger.debug(f"Mirrored {url} as {key}")
        return self.public_url(key)

    async def close(self) -> None:
        await self.client.aclose()
