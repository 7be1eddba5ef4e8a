"""
Claim metadata shared by publishing and reprocessing.
"""

from __future__ import annotations

import math
import re
from typing import Any

from ytsync.constants import MAX_DESCRIPTION_LINES, SOURCE_CATEGORIES, WATCH_URL
from ytsync.models import FeeConfig, Location, VideoItem
from ytsync.publishing.tags import TagSanitizer

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


def parse_duration(value: str) -> float:
    """Seconds in an ISO-8601 duration such as PT1H2M3S."""
    match = _ISO_DURATION.match(value or "")
    if not match or value in ("P", "PT"):
        raise ValueError(f"invalid ISO-8601 duration: {value!r}")
    parts = {k: float(v) for k, v in match.groupdict().items() if v}
    return (
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )


def duration_seconds(value: str) -> int:
    return math.ceil(parse_duration(value))


def abbreviated_description(
    item: VideoItem, channel_claim_id: str = "", notes: dict[str, str] | None = None
) -> str:
    """
    Description as published.

    Long descriptions keep their first lines and get a backlink to the source.
    """
    description = item.description.strip()
    if description.count("\n") < MAX_DESCRIPTION_LINES:
        return description

    backlink = f"\n{WATCH_URL}{item.id}"
    note = (notes or {}).get(channel_claim_id)
    if note:
        backlink += f"\n{note}"
    head = "\n".join(description.split("\n")[:MAX_DESCRIPTION_LINES])
    return f"{head}\n...{backlink}"


def resolve_metadata(
    item: VideoItem, sanitizer: TagSanitizer
) -> tuple[list[str] | None, list[Location] | None, list[str]]:
    """Languages, locations and tags for a video claim."""
    languages: list[str] | None = None
    locations: list[Location] | None = None
    tags: list[str] = []

    if not item.mocked:
        if item.default_language:
            languages = [item.default_language]
        if item.latitude is not None and item.longitude is not None:
            locations = [
                Location(latitude=f"{item.latitude:.7f}", longitude=f"{item.longitude:.7f}")
            ]
        tags = item.tags

    tags = sanitizer.sanitize(tags, item.channel_id)
    if not item.mocked:
        category = SOURCE_CATEGORIES.get(item.category_id or "")
        if category:
            tags.append(category)
    return languages, locations, tags


def metadata_params(
    languages: list[str] | None,
    locations: list[Location] | None,
    tags: list[str],
) -> dict[str, Any]:
    params: dict[str, Any] = {"tags": tags}
    if languages:
        params["languages"] = languages
    if locations:
        params["locations"] = [loc.to_rpc() for loc in locations]
    return params


def fee_params(fee: FeeConfig | None) -> dict[str, Any]:
    return fee.to_rpc() if fee is not None else {}
