"""Short video captions from a single frame via Gemini."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog
from google import genai
from google.genai import types as genai_types

if TYPE_CHECKING:
    from pathlib import Path

    from reelbridge.config import CaptionerSettings

log = structlog.get_logger()

_PUNCTUATION_RE = re.compile(r"[.,!?;:\"'«»]")


def clean_caption(text: str, max_words: int) -> str | None:
    """Strip punctuation and keep at most ``max_words`` words."""
    words = _PUNCTUATION_RE.sub("", text).split()
    if not words:
        return None
    return " ".join(words[:max_words])


class GeminiCaptioner:
    """Best-effort captioner: any failure is logged and yields ``None``."""

    def __init__(self, client: genai.Client, settings: CaptionerSettings) -> None:
        self._client = client
        self._settings = settings

    async def caption(self, image_path: Path) -> str | None:
        try:
            image = genai_types.Part.from_bytes(
                data=image_path.read_bytes(), mime_type="image/jpeg"
            )
            response = await self._client.aio.models.generate_content(
                model=self._settings.model,
                contents=[self._settings.prompt, image],
            )
        except Exception:
            log.warning("caption_generation_failed", image=image_path.name, exc_info=True)
            return None

        caption = clean_caption(response.text or "", self._settings.max_words)
        if caption:
            log.info("caption_generated", caption=caption)
        return caption
