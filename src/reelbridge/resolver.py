"""Reel page metadata resolution for the preview proxy.

Cache lookup → page fetch → Open Graph parse → fallbacks → cache store.
Returns ``None`` when the page cannot be fetched; the route turns that into
a 404.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from reelbridge.errors import ReelBridgeError
from reelbridge.models.cache import PageMetadata
from reelbridge.parser import parse_open_graph, sanitize_text

if TYPE_CHECKING:
    from reelbridge.cache import MetadataCache
    from reelbridge.protocols import FetcherProtocol

DEFAULT_TITLE = "Instagram Reels"
DEFAULT_DESCRIPTION = "Instagram Reels видео"
DEFAULT_VIDEO_TYPE = "video/mp4"


def reel_page_url(reel_id: str) -> str:
    return f"https://www.instagram.com/reel/{reel_id}/"


def reel_embed_url(reel_id: str) -> str:
    return f"https://www.instagram.com/p/{reel_id}/embed/"


class MetadataResolver:
    def __init__(self, fetcher: FetcherProtocol, cache: MetadataCache) -> None:
        self._fetcher = fetcher
        self._cache = cache

    async def resolve(self, reel_id: str) -> PageMetadata | None:
        """Return preview metadata for ``reel_id``, or None if the page is unreachable.

        A page without a preview image yields ``image_url=None``; the renderer
        substitutes the placeholder on the requesting host.
        """
        log = structlog.get_logger().bind(reel_id=reel_id)

        cached = self._cache.get(reel_id)
        if cached is not None:
            log.debug("metadata_cache_hit")
            return cached

        source_url = reel_page_url(reel_id)
        try:
            html = await self._fetcher.fetch(source_url)
        except ReelBridgeError as exc:
            log.warning("metadata_fetch_failed", code=exc.code, message=exc.message)
            return None

        fields = parse_open_graph(html)
        metadata = PageMetadata(
            title=sanitize_text(fields.title or DEFAULT_TITLE),
            description=sanitize_text(fields.description or DEFAULT_DESCRIPTION),
            image_url=fields.image,
            video_url=fields.video or reel_embed_url(reel_id),
            video_mime_type=fields.video_type or DEFAULT_VIDEO_TYPE,
            source_url=source_url,
        )
        self._cache.set(reel_id, metadata)
        log.info(
            "metadata_resolved",
            has_image=fields.image is not None,
            has_video=fields.video is not None,
        )
        return metadata
