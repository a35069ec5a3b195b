"""yt-dlp and ffmpeg wrappers.

yt-dlp runs in-process through its Python API; ffmpeg and ffprobe run as
asyncio subprocesses. Every step has its own timeout and a timeout counts as
a failure; nothing here retries. Failures surface as ``ReelBridgeError`` for
the coordinator to report. Outputs of a failed step are removed before the
error propagates.
"""

from __future__ import annotations

import asyncio
import math
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
import yt_dlp
from yt_dlp.version import __version__ as YTDLP_VERSION

from reelbridge.errors import ErrorCode, ReelBridgeError

if TYPE_CHECKING:
    from pathlib import Path

    from reelbridge.config import MediaSettings

log = structlog.get_logger()


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


async def run_command(args: list[str], timeout: float) -> CommandResult:
    """Run ``args`` and collect its output.

    Raises ``TimeoutError`` after killing the process if it overruns, and
    ``OSError`` if the executable cannot be started.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        process.kill()
        await process.wait()
        raise
    return CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="ignore"),
        stderr=stderr.decode("utf-8", errors="ignore"),
    )


def compute_video_bitrate(
    duration_seconds: float, target_size_mb: float, audio_bitrate_kbps: int
) -> int:
    """Video bitrate (kbps) that fits ``duration_seconds`` into ``target_size_mb``.

    The audio track gets a fixed share of the budget; the rest goes to video.
    """
    total_kbps = (target_size_mb * 8 * 1024) / duration_seconds
    return math.floor(total_kbps - audio_bitrate_kbps)


class YtDlpDownloader:
    """Downloads provider videos with the yt-dlp library.

    ``YoutubeDL`` blocks, so each download runs in a worker thread. Threads
    cannot be cancelled: on timeout a progress hook aborts the transfer at its
    next progress callback.
    """

    def __init__(self, settings: MediaSettings) -> None:
        self._settings = settings

    async def is_available(self) -> bool:
        if not YTDLP_VERSION:
            log.warning("ytdlp_not_found")
            return False
        log.info("ytdlp_found", version=YTDLP_VERSION)
        return True

    def _options(self, output_path: Path, cancelled: threading.Event) -> dict[str, Any]:
        def _abort_if_cancelled(_status: dict[str, Any]) -> None:
            if cancelled.is_set():
                raise yt_dlp.utils.DownloadCancelled("download timed out")

        return {
            "format": self._settings.download_format,
            "outtmpl": str(output_path),
            "quiet": True,
            "no_warnings": True,
            "noprogress": True,
            "noplaylist": True,
            "socket_timeout": self._settings.socket_timeout_seconds,
            "progress_hooks": [_abort_if_cancelled],
        }

    async def download(self, url: str, output_path: Path) -> Path:
        cancelled = threading.Event()
        ydl_opts = self._options(output_path, cancelled)

        def _run() -> None:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                ydl.extract_info(url, download=True)

        log.info("download_started", url=url, output=str(output_path))
        timeout = self._settings.download_timeout_seconds
        try:
            await asyncio.wait_for(asyncio.to_thread(_run), timeout=timeout)
        except TimeoutError as exc:
            cancelled.set()
            raise ReelBridgeError(
                code=ErrorCode.DOWNLOAD_FAILED,
                message=f"yt-dlp timed out after {timeout}s: {url}",
            ) from exc
        except yt_dlp.utils.YoutubeDLError as exc:
            raise ReelBridgeError(
                code=ErrorCode.DOWNLOAD_FAILED,
                message=f"yt-dlp failed for {url}: {exc}",
            ) from exc

        if not output_path.exists():
            raise ReelBridgeError(
                code=ErrorCode.DOWNLOAD_FAILED,
                message="Downloaded file not found.",
            )
        return output_path


class FfmpegTranscoder:
    """ffprobe/ffmpeg based compression and frame extraction."""

    def __init__(self, settings: MediaSettings) -> None:
        self._settings = settings

    async def probe_duration(self, video_path: Path) -> float:
        """Return the container duration in seconds."""
        args = [
            self._settings.ffprobe_binary,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(video_path),
        ]
        try:
            result = await run_command(args, timeout=self._settings.probe_timeout_seconds)
        except (OSError, TimeoutError) as exc:
            raise ReelBridgeError(
                code=ErrorCode.COMPRESS_FAILED,
                message=f"ffprobe failed for {video_path.name}: {exc!r}",
            ) from exc
        if result.returncode != 0:
            raise ReelBridgeError(
                code=ErrorCode.COMPRESS_FAILED,
                message=f"ffprobe exited with {result.returncode}: {result.stderr.strip()[-300:]}",
            )
        try:
            duration = float(result.stdout.strip())
        except ValueError as exc:
            raise ReelBridgeError(
                code=ErrorCode.COMPRESS_FAILED,
                message=f"Invalid video duration: {result.stdout.strip()!r}",
            ) from exc
        if not math.isfinite(duration) or duration <= 0:
            raise ReelBridgeError(
                code=ErrorCode.COMPRESS_FAILED,
                message=f"Invalid video duration: {duration}",
            )
        return duration

    async def _run_ffmpeg(
        self, args: list[str], output_path: Path, timeout: float, code: ErrorCode
    ) -> None:
        """Run ffmpeg to produce ``output_path``. A partial output is removed on failure."""
        try:
            result = await run_command(args, timeout=timeout)
            if result.returncode != 0:
                raise ReelBridgeError(
                    code=code,
                    message=f"ffmpeg exited with {result.returncode}: {result.stderr.strip()[-500:]}",
                )
            if not output_path.exists():
                raise ReelBridgeError(code=code, message=f"{output_path.name} was not written")
        except (OSError, TimeoutError) as exc:
            output_path.unlink(missing_ok=True)
            raise ReelBridgeError(
                code=code,
                message=f"ffmpeg failed for {output_path.name}: {exc!r}",
            ) from exc
        except ReelBridgeError:
            output_path.unlink(missing_ok=True)
            raise

    async def compress(self, video_path: Path, target_size_mb: float) -> Path:
        """Re-encode once at the bitrate that fits ``target_size_mb``."""
        compressed_path = video_path.with_name(f"{video_path.stem}_compressed.mp4")
        duration = await self.probe_duration(video_path)

        audio_kbps = self._settings.audio_bitrate_kbps
        video_kbps = compute_video_bitrate(duration, target_size_mb, audio_kbps)
        if video_kbps < self._settings.min_video_bitrate_kbps:
            raise ReelBridgeError(
                code=ErrorCode.VIDEO_TOO_LONG,
                message=f"Video too long to compress to {target_size_mb}MB ({duration:.1f}s)",
            )

        log.info(
            "compress_started",
            file=video_path.name,
            duration=round(duration, 1),
            video_kbps=video_kbps,
        )
        args = [
            self._settings.ffmpeg_binary,
            "-y",
            "-i",
            str(video_path),
            "-c:v",
            "libx264",
            "-preset",
            "fast",
            "-b:v",
            f"{video_kbps}k",
            "-c:a",
            "aac",
            "-b:a",
            f"{audio_kbps}k",
            "-movflags",
            "+faststart",
            str(compressed_path),
        ]
        await self._run_ffmpeg(
            args, compressed_path, self._settings.compress_timeout_seconds, ErrorCode.COMPRESS_FAILED
        )

        log.info(
            "compress_complete",
            file=compressed_path.name,
            size_mb=round(compressed_path.stat().st_size / (1024 * 1024), 2),
        )
        return compressed_path

    async def extract_frame(self, video_path: Path) -> Path:
        """Save the middle frame as JPEG, longest side capped at ``frame_max_dimension``."""
        frame_path = video_path.with_name(f"{video_path.stem}_frame.jpg")
        try:
            at_seconds = await self.probe_duration(video_path) / 2
        except ReelBridgeError:
            at_seconds = self._settings.fallback_frame_seconds
            log.warning("frame_duration_probe_failed", file=video_path.name, fallback=at_seconds)

        side = self._settings.frame_max_dimension
        # -2 keeps the other side even, which some encoders require
        scale = f"scale='if(gt(iw,ih),{side},-2)':'if(gt(iw,ih),-2,{side})'"
        args = [
            self._settings.ffmpeg_binary,
            "-y",
            "-ss",
            f"{at_seconds:.3f}",
            "-i",
            str(video_path),
            "-vframes",
            "1",
            "-vf",
            scale,
            "-q:v",
            "5",
            str(frame_path),
        ]
        await self._run_ffmpeg(
            args, frame_path, self._settings.probe_timeout_seconds, ErrorCode.FRAME_EXTRACT_FAILED
        )
        log.debug("frame_extracted", file=frame_path.name, at_seconds=round(at_seconds, 1))
        return frame_path
