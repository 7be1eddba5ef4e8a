"""
Tag sanitation collaborator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

MAX_TAGS = 20
MAX_TAG_LENGTH = 64


class TagSanitizer(ABC):
    @abstractmethod
    def sanitize(self, tags: list[str], channel_id: str) -> list[str]:
        """Clean up source tags for a video of the given channel"""

    def tags_for_channel(self, channel_id: str) -> list[str]:
        """Tags for the channel claim itself"""
        return []


class BasicTagSanitizer(TagSanitizer):
    """
    Lower-cases, trims and de-duplicates tags, keeping source order.
    """

    def __init__(self, channel_tags: dict[str, list[str]] | None = None):
        self.channel_tags = channel_tags or {}

    def sanitize(self, tags: list[str], channel_id: str) -> list[str]:
        seen: set[str] = set()
        cleaned: list[str] = []
        for tag in tags:
            tag = " ".join(tag.lower().split())
            if not tag or len(tag) > MAX_TAG_LENGTH or tag in seen:
                continue
            seen.add(tag)
            cleaned.append(tag)
            if len(cleaned) >= MAX_TAGS:
                break
        return cleaned

    def tags_for_channel(self, channel_id: str) -> list[str]:
        return list(self.channel_tags.get(channel_id, []))
