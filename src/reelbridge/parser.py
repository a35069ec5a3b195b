"""Open Graph extraction for scraped pages.

Reads the social-preview ``<meta>`` tags and the document ``<title>`` from an
HTML document. No fallbacks are applied here; missing fields come back as
``None`` and the resolver decides what to substitute.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

_MARKUP_CHARS_RE = re.compile(r"['\"<>]")


@dataclass(frozen=True)
class OpenGraphFields:
    title: str | None = None
    description: str | None = None
    image: str | None = None
    video: str | None = None
    video_type: str | None = None


def _meta(soup: BeautifulSoup, *, prop: str | None = None, name: str | None = None) -> str | None:
    attrs = {"property": prop} if prop else {"name": name}
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = tag.get("content")
    if isinstance(content, list):
        content = " ".join(content)
    return content or None


def _first(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def parse_open_graph(html: str) -> OpenGraphFields:
    """Extract Open Graph fields, trying the secure_url variants second."""
    soup = BeautifulSoup(html, "html.parser")
    title_tag = soup.find("title")
    page_title = title_tag.get_text().strip() if title_tag else None

    return OpenGraphFields(
        title=_first(_meta(soup, prop="og:title"), page_title),
        description=_first(
            _meta(soup, prop="og:description"),
            _meta(soup, name="description"),
        ),
        image=_first(_meta(soup, prop="og:image"), _meta(soup, prop="og:image:secure_url")),
        video=_first(_meta(soup, prop="og:video"), _meta(soup, prop="og:video:secure_url")),
        video_type=_meta(soup, prop="og:video:type"),
    )


def sanitize_text(value: str) -> str:
    """Drop quote and angle-bracket characters before interpolating into markup."""
    return _MARKUP_CHARS_RE.sub("", value)
