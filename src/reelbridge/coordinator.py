"""Link-to-cached-video pipeline.

For every video link in a chat message the coordinator either re-sends the
cached Telegram file, or downloads, (if needed) compresses, captions and
uploads the video, then records the resulting file_id. Links are handled one
after another; a failure on one link is reported to the chat and the next
link is still processed. No Telegram or subprocess imports here: the
collaborators come in through ``reelbridge.protocols``.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from reelbridge.errors import ReelBridgeError
from reelbridge.links import extract_video_links, temp_stem
from reelbridge.models.delivery import LinkOutcome

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from reelbridge.config import MediaSettings
    from reelbridge.models.links import VideoReference
    from reelbridge.protocols import (
        ArtifactCacheProtocol,
        CaptionerProtocol,
        DeliveryProtocol,
        DownloaderProtocol,
        FrameExtractorProtocol,
        TranscoderProtocol,
    )

_BYTES_PER_MB = 1024 * 1024

DOWNLOADER_UNAVAILABLE_NOTICE = "⚠️ yt-dlp is not available. Cannot download video."
LINK_ERROR_NOTICE = "❌ Error processing link: {url}"
COMPRESSING_NOTICE = "⚙️ Видео слишком большое ({size_mb:.1f}MB), сжимаю..."
COMPRESS_FAILED_NOTICE = "❌ Не удалось сжать видео ({size_mb:.1f}MB). Слишком большой размер."


class FetchCoordinator:
    """Serves video links from cache or runs download → compress → deliver → cache."""

    def __init__(
        self,
        *,
        cache: ArtifactCacheProtocol,
        downloader: DownloaderProtocol,
        transcoder: TranscoderProtocol,
        frame_extractor: FrameExtractorProtocol,
        captioner: CaptionerProtocol | None,
        delivery: DeliveryProtocol,
        settings: MediaSettings,
        downloader_available: bool = True,
    ) -> None:
        self._cache = cache
        self._downloader = downloader
        self._transcoder = transcoder
        self._frame_extractor = frame_extractor
        self._captioner = captioner
        self._delivery = delivery
        self._settings = settings
        self.downloader_available = downloader_available

    async def handle_message(self, chat_id: int, message_id: int, text: str | None) -> list[LinkOutcome]:
        """Process every video link in ``text`` in order. Returns one outcome per link."""
        refs = extract_video_links(text)
        if not refs:
            return []

        structlog.get_logger().info("links_found", chat_id=chat_id, count=len(refs))
        outcomes: list[LinkOutcome] = []
        for ref in refs:
            outcomes.append(await self.process_link(chat_id, message_id, ref))
        return outcomes

    async def process_link(self, chat_id: int, message_id: int, ref: VideoReference) -> LinkOutcome:
        """Run the pipeline for one link. Never raises for per-link failures."""
        log = structlog.get_logger().bind(chat_id=chat_id, key=ref.cache_key)
        try:
            return await self._process_link(chat_id, message_id, ref, log)
        except Exception:
            log.error("link_unexpected_error", url=ref.source_url, exc_info=True)
            await self._notify(chat_id, LINK_ERROR_NOTICE.format(url=ref.source_url), log)
            return LinkOutcome.FAILED

    async def _process_link(
        self,
        chat_id: int,
        message_id: int,
        ref: VideoReference,
        log: FilteringBoundLogger,
    ) -> LinkOutcome:
        await self._chat_action(chat_id, "typing", log)

        cached = await self._cache.get(ref.cache_key)
        if cached is not None:
            await self._chat_action(chat_id, "upload_video", log)
            await self._delivery.send_video(
                chat_id,
                cached.artifact_handle,
                caption=cached.caption,
                reply_to=message_id,
            )
            log.info("sent_from_cache", caption=cached.caption)
            return LinkOutcome.CACHED

        if not self.downloader_available:
            log.info("downloader_unavailable")
            await self._notify(chat_id, DOWNLOADER_UNAVAILABLE_NOTICE, log)
            return LinkOutcome.UNAVAILABLE

        # One directory per link: concurrent fetches of the same video never share files.
        stem = temp_stem(ref.cache_key)
        work_dir = Path(tempfile.mkdtemp(prefix=f"{stem}_", dir=self._settings.temp_dir))
        try:
            return await self._fetch_and_deliver(
                chat_id, message_id, ref, work_dir / f"{stem}.mp4", log
            )
        finally:
            self._cleanup(work_dir, log)

    async def _fetch_and_deliver(
        self,
        chat_id: int,
        message_id: int,
        ref: VideoReference,
        output_path: Path,
        log: FilteringBoundLogger,
    ) -> LinkOutcome:
        try:
            video_path = await self._downloader.download(ref.source_url, output_path)
        except ReelBridgeError as exc:
            log.warning("download_failed", url=ref.source_url, code=exc.code, message=exc.message)
            await self._notify(chat_id, LINK_ERROR_NOTICE.format(url=ref.source_url), log)
            return LinkOutcome.FAILED

        size_mb = video_path.stat().st_size / _BYTES_PER_MB
        log.info("download_complete", size_mb=round(size_mb, 2))

        if size_mb > self._settings.max_upload_mb:
            await self._notify(
                chat_id, COMPRESSING_NOTICE.format(size_mb=size_mb), log, reply_to=message_id
            )
            try:
                video_path = await self._transcoder.compress(
                    video_path, self._settings.target_size_mb
                )
            except ReelBridgeError as exc:
                log.warning("compress_failed", code=exc.code, message=exc.message)
                await self._notify(
                    chat_id,
                    COMPRESS_FAILED_NOTICE.format(size_mb=size_mb),
                    log,
                    reply_to=message_id,
                )
                return LinkOutcome.FAILED

        await self._chat_action(chat_id, "upload_video", log)

        # Caption and upload are independent; wait for both before caching.
        caption, sent = await asyncio.gather(
            self._generate_caption(video_path, log),
            self._delivery.send_video(chat_id, video_path, reply_to=message_id),
            return_exceptions=True,
        )
        if isinstance(sent, BaseException):
            raise sent
        if isinstance(caption, BaseException):
            raise caption

        attached_caption: str | None = None
        if caption:
            try:
                await self._delivery.edit_caption(chat_id, sent.message_id, caption)
                attached_caption = caption
            except Exception:
                log.warning("caption_edit_failed", message_id=sent.message_id, exc_info=True)

        if sent.artifact_id:
            await self._cache.put(ref.cache_key, sent.artifact_id, attached_caption)
        else:
            log.warning("delivery_missing_artifact", message_id=sent.message_id)

        log.info("video_delivered", message_id=sent.message_id, caption=attached_caption)
        return LinkOutcome.DELIVERED

    async def _generate_caption(self, video_path: Path, log: FilteringBoundLogger) -> str | None:
        """Frame extraction + captioning. Best effort: failures yield None."""
        if self._captioner is None:
            return None
        try:
            frame_path = await self._frame_extractor.extract_frame(video_path)
            return await self._captioner.caption(frame_path)
        except Exception:
            log.warning("caption_failed", exc_info=True)
            return None

    async def _notify(
        self,
        chat_id: int,
        text: str,
        log: FilteringBoundLogger,
        *,
        reply_to: int | None = None,
    ) -> None:
        try:
            await self._delivery.send_message(chat_id, text, reply_to=reply_to)
        except Exception:
            log.error("notice_send_failed", text=text, exc_info=True)

    async def _chat_action(self, chat_id: int, action: str, log: FilteringBoundLogger) -> None:
        try:
            await self._delivery.send_chat_action(chat_id, action)
        except Exception:
            log.debug("chat_action_failed", action=action, exc_info=True)

    @staticmethod
    def _cleanup(work_dir: Path, log: FilteringBoundLogger) -> None:
        """Remove the link's work directory with every file written into it."""
        try:
            shutil.rmtree(work_dir)
        except OSError:
            log.warning("temp_cleanup_failed", path=str(work_dir), exc_info=True)
