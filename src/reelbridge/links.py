"""Video link detection for chat messages.

Finds Instagram and YouTube URLs in free-form text and reduces each to a
``(provider, video_id)`` pair. Results keep the order in which the URLs
appear in the text; repeated URLs are returned once per occurrence.
"""

from __future__ import annotations

import re

from reelbridge.models.links import Provider, VideoReference

_INSTAGRAM_URL_RE = re.compile(r"https?://(?:www\.)?instagram\.com/(?:p|reel)/[^/\s]+")
_YOUTUBE_URL_RE = re.compile(
    r"https?://(?:(?:www\.|m\.)?youtube\.com/(?:watch\?v=|shorts/)|youtu\.be/)\S+"
)

_INSTAGRAM_ID_RE = re.compile(r"/(?:p|reel)/([^/?\s]+)")
_YOUTUBE_ID_RES = (
    re.compile(r"[?&]v=([^&\s]+)"),
    re.compile(r"youtu\.be/([^/?&\s]+)"),
    re.compile(r"/shorts/([^/?&\s]+)"),
)

_REEL_ID_RE = re.compile(r"[A-Za-z0-9_-]+")
_UNSAFE_PATH_CHARS_RE = re.compile(r"[^A-Za-z0-9_.-]")


def extract_instagram_id(url: str) -> str | None:
    """Return the post/reel ID from an Instagram URL, or None."""
    match = _INSTAGRAM_ID_RE.search(url)
    return match.group(1) if match else None


def extract_youtube_id(url: str) -> str | None:
    """Return the video ID from a watch, youtu.be or shorts URL, or None."""
    for pattern in _YOUTUBE_ID_RES:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def parse_reel_id(segment: str) -> str | None:
    """Return the reel ID named by a bare path segment such as ``DMziLlstNg2``.

    Applies the same ID rule as chat links, restricted to the characters
    Instagram uses in shortcodes. Anything else yields None.
    """
    if not _REEL_ID_RE.fullmatch(segment):
        return None
    return extract_instagram_id(f"/reel/{segment}")


_EXTRACTORS = (
    (Provider.INSTAGRAM, _INSTAGRAM_URL_RE, extract_instagram_id),
    (Provider.YOUTUBE, _YOUTUBE_URL_RE, extract_youtube_id),
)


def extract_video_links(text: str | None) -> list[VideoReference]:
    """Find every supported video link in ``text``.

    URLs whose ID segment cannot be parsed are dropped silently.
    """
    found: list[tuple[int, VideoReference]] = []
    for provider, url_re, extract_id in _EXTRACTORS:
        for match in url_re.finditer(text or ""):
            url = match.group(0)
            video_id = extract_id(url)
            if not video_id:
                continue
            found.append(
                (match.start(), VideoReference(provider=provider, video_id=video_id, source_url=url))
            )

    found.sort(key=lambda item: item[0])
    return [ref for _, ref in found]


def temp_stem(cache_key: str) -> str:
    """Filesystem-safe file stem for a cache key: ``'youtube:abc'`` → ``'youtube_abc'``."""
    return _UNSAFE_PATH_CHARS_RE.sub("_", cache_key)
