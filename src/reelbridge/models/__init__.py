from __future__ import annotations

from reelbridge.models.cache import ArtifactEntry, MetadataEntry, PageMetadata
from reelbridge.models.delivery import DeliveredVideo, LinkOutcome
from reelbridge.models.links import Provider, VideoReference

__all__ = [
    # links
    "Provider",
    "VideoReference",
    # cache
    "ArtifactEntry",
    "PageMetadata",
    "MetadataEntry",
    # delivery
    "DeliveredVideo",
    "LinkOutcome",
]
