"""
YouTube Data API v3 source.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx
from loguru import logger

from ytsync.errors import SourceNotFound
from ytsync.models import ChannelSnippet, Thumbnail, VideoItem
from ytsync.sources.base import SourcePlatform

# videos.list and playlistItems.list both cap page size at 50
PAGE_SIZE = 50


def _thumbnails(raw: dict[str, Any] | None) -> dict[str, Thumbnail]:
    return {
        key: Thumbnail(url=value["url"], width=value.get("width"), height=value.get("height"))
        for key, value in (raw or {}).items()
        if value.get("url")
    }


def _parse_published(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Could not parse publish time {value!r}")
        return None


def video_from_resource(resource: dict[str, Any], position: int = 0) -> VideoItem:
    """Build a VideoItem from a videos.list resource."""
    snippet = resource.get("snippet") or {}
    content = resource.get("contentDetails") or {}
    location = (resource.get("recordingDetails") or {}).get("location") or {}

    item = VideoItem(
        id=resource["id"],
        channel_id=snippet.get("channelId", ""),
        title=snippet.get("title", ""),
        description=snippet.get("description", ""),
        playlist_position=position,
        duration=content.get("duration"),
        default_language=snippet.get("defaultLanguage") or None,
        tags=list(snippet.get("tags") or []),
        category_id=snippet.get("categoryId"),
        latitude=location.get("latitude"),
        longitude=location.get("longitude"),
        thumbnails=_thumbnails(snippet.get("thumbnails")),
    )
    published = _parse_published(snippet.get("publishedAt"))
    if published is not None:
        item.published_at = published
    return item


class YouTubeDataAPI(SourcePlatform):
    """
    Source platform backed by the public YouTube Data API.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://www.googleapis.com/youtube/v3",
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=30.0)

    async def _api_call(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.api_url}/{endpoint}"
        try:
            response = await self.client.get(url, params={**params, "key": self.api_key})
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"YouTube API call failed: {endpoint} - {e}")
            raise

    async def _channel(self, channel_id: str, parts: str) -> dict[str, Any]:
        data = await self._api_call("channels", {"part": parts, "id": channel_id})
        items = data.get("items") or []
        if not items:
            raise SourceNotFound(f"youtube channel {channel_id} not found")
        return items[0]

    async def count_videos(self, channel_id: str) -> int:
        channel = await self._channel(channel_id, "statistics")
        return int((channel.get("statistics") or {}).get("videoCount", 0))

    async def get_channel_snippet(self, channel_id: str) -> ChannelSnippet:
        channel = await self._channel(channel_id, "snippet,brandingSettings")
        snippet = channel.get("snippet") or {}
        image = (channel.get("brandingSettings") or {}).get("image") or {}
        return ChannelSnippet(
            channel_id=channel_id,
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            thumbnails=_thumbnails(snippet.get("thumbnails")),
            banner_url=image.get("bannerImageUrl") or None,
            default_language=snippet.get("defaultLanguage") or None,
            country=snippet.get("country") or None,
        )

    async def _upload_ids(self, channel_id: str, limit: int) -> list[str]:
        channel = await self._channel(channel_id, "contentDetails")
        playlist = channel["contentDetails"]["relatedPlaylists"]["uploads"]

        ids: list[str] = []
        page_token: str | None = None
        while len(ids) < limit:
            params: dict[str, Any] = {
                "part": "contentDetails",
                "playlistId": playlist,
                "maxResults": PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token
            data = await self._api_call("playlistItems", params)
            ids.extend(item["contentDetails"]["videoId"] for item in data.get("items", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        return ids[:limit]

    async def list_videos(self, channel_id: str, limit: int) -> list[VideoItem]:
        ids = await self._upload_ids(channel_id, limit)
        # Uploads playlist is newest first; position counts from the oldest
        positions = {video_id: len(ids) - i for i, video_id in enumerate(ids)}
        videos: list[VideoItem] = []
        for i in range(0, len(ids), PAGE_SIZE):
            chunk = ids[i : i + PAGE_SIZE]
            data = await self._api_call(
                "videos",
                {"part": "snippet,contentDetails,recordingDetails", "id": ",".join(chunk)},
            )
            by_id = {item["id"]: item for item in data.get("items", [])}
            for video_id in chunk:
                if video_id not in by_id:
                    logger.warning(f"{video_id} missing from videos.list response, skipping")
                    continue
                videos.append(video_from_resource(by_id[video_id], positions[video_id]))
        logger.debug(f"Listed {len(videos)} videos for {channel_id}")
        return videos

    async def get_video(self, video_id: str) -> VideoItem | None:
        data = await self._api_call(
            "videos", {"part": "snippet,contentDetails,recordingDetails", "id": video_id}
        )
        items = data.get("items") or []
        if not items:
            return None
        return video_from_resource(items[0])

    async def close(self) -> None:
        await self.client.aclose()
