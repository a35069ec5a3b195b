"""Shared test fixtures for the reelbridge test suite.

The collaborator fakes record every call so tests can assert on which
external tools the coordinator touched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from reelbridge.cache import ArtifactCache
from reelbridge.config import MediaSettings
from reelbridge.coordinator import FetchCoordinator
from reelbridge.errors import ErrorCode, ReelBridgeError
from reelbridge.models.delivery import DeliveredVideo

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from pathlib import Path


@dataclass
class SentVideo:
    chat_id: int
    video: Path | str
    caption: str | None
    reply_to: int | None


@dataclass
class FakeDelivery:
    videos: list[SentVideo] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)
    caption_edits: list[tuple[int, str]] = field(default_factory=list)
    fail_upload: bool = False
    fail_edit: bool = False
    return_artifact: bool = True
    uploaded_files_existed: list[bool] = field(default_factory=list)
    _next_message_id: int = 100

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        self.actions.append(action)

    async def send_video(
        self,
        chat_id: int,
        video: Path | str,
        *,
        caption: str | None = None,
        reply_to: int | None = None,
    ) -> DeliveredVideo:
        if self.fail_upload:
            raise RuntimeError("upload rejected")
        if not isinstance(video, str):
            self.uploaded_files_existed.append(video.exists())
        self.videos.append(SentVideo(chat_id, video, caption, reply_to))
        self._next_message_id += 1
        artifact_id = f"file-{self._next_message_id}" if self.return_artifact else None
        return DeliveredVideo(message_id=self._next_message_id, artifact_id=artifact_id)

    async def edit_caption(self, chat_id: int, message_id: int, caption: str) -> None:
        if self.fail_edit:
            raise RuntimeError("message not modified")
        self.caption_edits.append((message_id, caption))

    async def send_message(self, chat_id: int, text: str, *, reply_to: int | None = None) -> None:
        self.messages.append(text)


@dataclass
class FakeDownloader:
    size_bytes: int = 2048
    fail: bool = False
    available: bool = True
    calls: list[tuple[str, Path]] = field(default_factory=list)
    created: list[Path] = field(default_factory=list)

    async def is_available(self) -> bool:
        return self.available

    async def download(self, url: str, output_path: Path) -> Path:
        self.calls.append((url, output_path))
        if self.fail:
            # yt-dlp leaves its partial download behind when it gives up
            partial = output_path.with_name(f"{output_path.name}.part")
            partial.write_bytes(b"\0" * 64)
            self.created.append(partial)
            raise ReelBridgeError(code=ErrorCode.DOWNLOAD_FAILED, message="ERROR: HTTP Error 403")
        output_path.write_bytes(b"\0" * self.size_bytes)
        self.created.append(output_path)
        return output_path


@dataclass
class FakeTranscoder:
    fail_compress: bool = False
    fail_frame: bool = False
    compress_calls: list[Path] = field(default_factory=list)
    frame_calls: list[Path] = field(default_factory=list)
    created: list[Path] = field(default_factory=list)

    async def compress(self, video_path: Path, target_size_mb: float) -> Path:
        self.compress_calls.append(video_path)
        if self.fail_compress:
            raise ReelBridgeError(code=ErrorCode.VIDEO_TOO_LONG, message="Video too long")
        path = video_path.with_name(f"{video_path.stem}_compressed.mp4")
        path.write_bytes(b"\0" * 512)
        self.created.append(path)
        return path

    async def extract_frame(self, video_path: Path) -> Path:
        self.frame_calls.append(video_path)
        if self.fail_frame:
            raise ReelBridgeError(code=ErrorCode.FRAME_EXTRACT_FAILED, message="no frame")
        path = video_path.with_name(f"{video_path.stem}_frame.jpg")
        path.write_bytes(b"\xff\xd8\xff")
        self.created.append(path)
        return path


@dataclass
class FakeCaptioner:
    result: str | None = "кот на диване"
    calls: list[Path] = field(default_factory=list)

    async def caption(self, image_path: Path) -> str | None:
        self.calls.append(image_path)
        return self.result


@pytest.fixture()
async def artifact_cache() -> AsyncGenerator[ArtifactCache, None]:
    """ArtifactCache over an in-memory SQLite database."""
    async with aiosqlite.connect(":memory:") as db:
        cache = ArtifactCache(db)
        await cache.init_db()
        yield cache


@pytest.fixture()
def media_settings(tmp_path: Path) -> MediaSettings:
    # 1 KiB ceiling so small fake files can exercise the compression branch
    return MediaSettings(temp_dir=str(tmp_path), max_upload_mb=1 / 1024, target_size_mb=45.0)


@pytest.fixture()
def delivery() -> FakeDelivery:
    return FakeDelivery()


@pytest.fixture()
def downloader() -> FakeDownloader:
    return FakeDownloader(size_bytes=512)


@pytest.fixture()
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture()
def captioner() -> FakeCaptioner:
    return FakeCaptioner()


@pytest.fixture()
def make_coordinator(
    artifact_cache: ArtifactCache,
    downloader: FakeDownloader,
    transcoder: FakeTranscoder,
    captioner: FakeCaptioner,
    delivery: FakeDelivery,
    media_settings: MediaSettings,
) -> Callable[..., FetchCoordinator]:
    def _make(**overrides: object) -> FetchCoordinator:
        kwargs: dict = {
            "cache": artifact_cache,
            "downloader": downloader,
            "transcoder": transcoder,
            "frame_extractor": transcoder,
            "captioner": captioner,
            "delivery": delivery,
            "settings": media_settings,
            "downloader_available": downloader.available,
        }
        kwargs.update(overrides)
        return FetchCoordinator(**kwargs)

    return _make


@pytest.fixture()
def fake_youtube_dl() -> Callable[[Callable[[dict, str], None]], type]:
    """Build a stand-in for ``yt_dlp.YoutubeDL`` whose download step runs ``behaviour``.

    ``behaviour(params, url)`` receives the options the downloader passed in.
    """

    def _make(behaviour: Callable[[dict, str], None]) -> type:
        class _FakeYoutubeDL:
            instances: list[_FakeYoutubeDL] = []

            def __init__(self, params: dict) -> None:
                self.params = params
                _FakeYoutubeDL.instances.append(self)

            def __enter__(self) -> _FakeYoutubeDL:
                return self

            def __exit__(self, *exc_info: object) -> None:
                return None

            def extract_info(self, url: str, download: bool = True) -> dict:
                behaviour(self.params, url)
                return {"id": url.rsplit("/", 1)[-1]}

        return _FakeYoutubeDL

    return _make
