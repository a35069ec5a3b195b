"""Unit tests for reelbridge.captioner."""

from __future__ import annotations

from types import SimpleNamespace
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest

from reelbridge.captioner import GeminiCaptioner, clean_caption
from reelbridge.config import CaptionerSettings

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Кот на диване.", "Кот на диване"),
        ("«Собака», бежит по пляжу!", "Собака бежит по"),
        ("  закат  ", "закат"),
        ("...", None),
        ("", None),
    ],
)
def test_clean_caption(raw: str, expected: str | None) -> None:
    assert clean_caption(raw, max_words=3) == expected


def _client(generate: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = generate
    return client


@pytest.fixture()
def frame(tmp_path: Path) -> Path:
    path = tmp_path / "frame.jpg"
    path.write_bytes(b"\xff\xd8\xff\xe0")
    return path


async def test_caption_sends_prompt_and_image(frame: Path) -> None:
    generate = AsyncMock(return_value=SimpleNamespace(text="Девушка танцует на улице."))
    settings = CaptionerSettings()

    caption = await GeminiCaptioner(_client(generate), settings).caption(frame)

    assert caption == "Девушка танцует на"
    kwargs = generate.await_args.kwargs
    assert kwargs["model"] == settings.model
    prompt, image = kwargs["contents"]
    assert prompt == settings.prompt
    assert image.inline_data.mime_type == "image/jpeg"
    assert image.inline_data.data == frame.read_bytes()


async def test_api_error_yields_none(frame: Path) -> None:
    generate = AsyncMock(side_effect=RuntimeError("quota exceeded"))

    assert await GeminiCaptioner(_client(generate), CaptionerSettings()).caption(frame) is None


async def test_empty_response_yields_none(frame: Path) -> None:
    generate = AsyncMock(return_value=SimpleNamespace(text=None))

    assert await GeminiCaptioner(_client(generate), CaptionerSettings()).caption(frame) is None


async def test_unreadable_frame_yields_none(tmp_path: Path) -> None:
    generate = AsyncMock()
    captioner = GeminiCaptioner(_client(generate), CaptionerSettings())

    assert await captioner.caption(tmp_path / "missing.jpg") is None
    generate.assert_not_awaited()
