"""Protocol interfaces for swappable components.

The coordinator and resolver reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory fakes instead of yt-dlp, ffmpeg,
  Gemini and Telegram
- Another chat transport or cache backend to be swapped in without touching
  the pipeline
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path

    from reelbridge.models.cache import ArtifactEntry
    from reelbridge.models.delivery import DeliveredVideo


class ArtifactCacheProtocol(Protocol):
    """Interface for the persistent artifact cache."""

    async def get(self, key: str) -> ArtifactEntry | None: ...

    async def put(self, key: str, artifact_handle: str, caption: str | None = None) -> bool: ...


class DownloaderProtocol(Protocol):
    """Fetches a provider video to ``output_path``."""

    async def is_available(self) -> bool: ...

    async def download(self, url: str, output_path: Path) -> Path: ...


class TranscoderProtocol(Protocol):
    """Re-encodes a video so it fits a size budget."""

    async def compress(self, video_path: Path, target_size_mb: float) -> Path: ...


class FrameExtractorProtocol(Protocol):
    """Grabs a still frame from the middle of a video."""

    async def extract_frame(self, video_path: Path) -> Path: ...


class CaptionerProtocol(Protocol):
    """Describes an image in a few words. Returns None when it cannot."""

    async def caption(self, image_path: Path) -> str | None: ...


class FetcherProtocol(Protocol):
    """Interface for the HTTP page fetcher."""

    async def fetch(self, url: str) -> str: ...


class DeliveryProtocol(Protocol):
    """Chat transport used to talk back to the user."""

    async def send_chat_action(self, chat_id: int, action: str) -> None: ...

    async def send_video(
        self,
        chat_id: int,
        video: Path | str,
        *,
        caption: str | None = None,
        reply_to: int | None = None,
    ) -> DeliveredVideo: ...

    async def edit_caption(self, chat_id: int, message_id: int, caption: str) -> None: ...

    async def send_message(self, chat_id: int, text: str, *, reply_to: int | None = None) -> None: ...
