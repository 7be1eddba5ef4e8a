"""
Claim publishing: channel ownership, new streams and in-place reprocessing.
"""

from ytsync.publishing.channel import ChannelOwnershipManager
from ytsync.publishing.namer import Namer, claim_name
from ytsync.publishing.publish import PublishEngine
from ytsync.publishing.reprocess import ReprocessEngine, resolve_size
from ytsync.publishing.tags import BasicTagSanitizer, TagSanitizer

__all__ = [
    "BasicTagSanitizer",
    "ChannelOwnershipManager",
    "Namer",
    "PublishEngine",
    "ReprocessEngine",
    "TagSanitizer",
    "claim_name",
    "resolve_size",
]
