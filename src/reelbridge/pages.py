"""HTML and SVG bodies served by the preview proxy."""

from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reelbridge.models.cache import PageMetadata

EXAMPLE_REEL_ID = "DMziLlstNg2"
DEFAULT_THUMBNAIL_PATH = "/default-thumbnail.jpg"

_PREVIEW_STYLE = """
        body {
            margin: 0;
            padding: 0;
            background: #000;
            font-family: Arial, sans-serif;
        }
        .video-container {
            width: 100vw;
            height: 100vh;
            display: flex;
            align-items: center;
            justify-content: center;
        }
        .video-player {
            width: 100%;
            height: 100%;
            border: none;
            background: #000;
        }
        .fallback {
            color: white;
            text-align: center;
            padding: 20px;
        }"""

_LANDING_STYLE = """
        body {
            margin: 0;
            padding: 20px;
            font-family: Arial, sans-serif;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            min-height: 100vh;
            display: flex;
            align-items: center;
            justify-content: center;
        }
        .container {
            background: white;
            border-radius: 15px;
            padding: 40px;
            box-shadow: 0 10px 30px rgba(0,0,0,0.2);
            max-width: 600px;
            text-align: center;
        }
        h1 { color: #333; margin-bottom: 20px; }
        .example { margin-top: 30px; padding: 20px; background: #f8f9fa; border-radius: 8px; }
        .example h3 { margin-top: 0; color: #333; }
        .example a { color: #667eea; text-decoration: none; }
        .example a:hover { text-decoration: underline; }"""


def _og_tags(meta: PageMetadata, page_url: str, image_url: str) -> list[str]:
    tags = [
        ("og:title", meta.title),
        ("og:description", meta.description),
        ("og:type", "video.other"),
        ("og:url", page_url),
        ("og:site_name", "Instagram Reels"),
        ("og:locale", "ru_RU"),
        ("og:image", image_url),
    ]
    if meta.video_url:
        tags += [
            ("og:video", meta.video_url),
            ("og:video:secure_url", meta.video_url),
            ("og:video:type", meta.video_mime_type),
            ("og:video:width", "1080"),
            ("og:video:height", "1920"),
            ("og:video:duration", "30"),
        ]
    return [
        f'    <meta property="{prop}" content="{escape(value, quote=True)}">'
        for prop, value in tags
    ]


def render_preview_page(meta: PageMetadata, page_url: str, base_url: str) -> str:
    """Page whose Open Graph tags make Telegram show the reel inline.

    ``base_url`` is the origin the request arrived on; the placeholder
    thumbnail is served from there when the reel has no preview image.
    """
    image_url = meta.image_url or f"{base_url.rstrip('/')}{DEFAULT_THUMBNAIL_PATH}"
    if meta.video_url:
        body = (
            f'        <iframe src="{escape(meta.video_url, quote=True)}" class="video-player" '
            'frameborder="0" allowfullscreen></iframe>'
        )
    else:
        body = "\n".join([
            '        <div class="fallback">',
            f"            <h2>{meta.title}</h2>",
            f"            <p>{meta.description}</p>",
            f'            <a href="{escape(meta.source_url, quote=True)}" target="_blank" '
            'style="color: #667eea;">Открыть в Instagram</a>',
            "        </div>",
        ])

    og = "\n".join(_og_tags(meta, page_url, image_url))
    return f"""<!DOCTYPE html>
<html lang="ru">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
{og}
    <title>{meta.title}</title>
    <style>{_PREVIEW_STYLE}
    </style>
</head>
<body>
    <div class="video-container">
{body}
    </div>
</body>
</html>"""


def render_landing_page(base_url: str) -> str:
    base = escape(base_url.rstrip("/"), quote=True)
    return f"""<!DOCTYPE html>
<html lang="ru">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Instagram Reels Proxy</title>
    <style>{_LANDING_STYLE}
    </style>
</head>
<body>
    <div class="container">
        <h1>Instagram Reels Proxy</h1>
        <p>Сервис для проксирования Instagram Reels с поддержкой Open Graph</p>
        <div class="example">
            <h3>Пример использования:</h3>
            <p>Оригинальная ссылка:</p>
            <a href="https://www.instagram.com/reel/{EXAMPLE_REEL_ID}/" target="_blank">
                https://www.instagram.com/reel/{EXAMPLE_REEL_ID}/
            </a>
            <p>Прокси ссылка для Telegram:</p>
            <a href="/tg/{EXAMPLE_REEL_ID}" target="_blank">
                {base}/tg/{EXAMPLE_REEL_ID}
            </a>
        </div>
    </div>
</body>
</html>"""


def render_default_thumbnail() -> str:
    """400×400 placeholder used when a reel page has no preview image."""
    return """<svg width="400" height="400" xmlns="http://www.w3.org/2000/svg">
    <rect width="400" height="400" fill="#667eea"/>
    <text x="200" y="200" font-family="Arial" font-size="24" fill="white" text-anchor="middle" dominant-baseline="middle">
        Instagram Reels
    </text>
</svg>"""
