"""Telegram bot entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Refuse to start without BOT_TOKEN
- Build AppState in the Application's post_init hook
- Forward text messages to the FetchCoordinator
- Adapt python-telegram-bot's Bot to DeliveryProtocol
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from google import genai
from telegram import ReplyParameters, Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from reelbridge import __version__
from reelbridge.cache import ArtifactCache
from reelbridge.captioner import GeminiCaptioner
from reelbridge.config import Settings
from reelbridge.coordinator import FetchCoordinator
from reelbridge.errors import ErrorCode, ReelBridgeError
from reelbridge.logs import setup_logging
from reelbridge.media import FfmpegTranscoder, YtDlpDownloader
from reelbridge.models.delivery import DeliveredVideo
from reelbridge.state import AppState

if TYPE_CHECKING:
    from telegram import Bot

log = structlog.get_logger()


class TelegramDelivery:
    """DeliveryProtocol on top of python-telegram-bot."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    @staticmethod
    def _reply(reply_to: int | None) -> ReplyParameters | None:
        if reply_to is None:
            return None
        return ReplyParameters(message_id=reply_to, allow_sending_without_reply=True)

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        await self._bot.send_chat_action(chat_id=chat_id, action=action)

    async def send_video(
        self,
        chat_id: int,
        video: Path | str,
        *,
        caption: str | None = None,
        reply_to: int | None = None,
    ) -> DeliveredVideo:
        if isinstance(video, Path):
            with video.open("rb") as f:
                message = await self._bot.send_video(
                    chat_id=chat_id,
                    video=f,
                    filename="video.mp4",
                    caption=caption,
                    supports_streaming=True,
                    reply_parameters=self._reply(reply_to),
                )
        else:
            # A file_id from an earlier upload
            message = await self._bot.send_video(
                chat_id=chat_id,
                video=video,
                caption=caption,
                reply_parameters=self._reply(reply_to),
            )
        return DeliveredVideo(
            message_id=message.message_id,
            artifact_id=message.video.file_id if message.video else None,
        )

    async def edit_caption(self, chat_id: int, message_id: int, caption: str) -> None:
        await self._bot.edit_message_caption(
            chat_id=chat_id, message_id=message_id, caption=caption
        )

    async def send_message(self, chat_id: int, text: str, *, reply_to: int | None = None) -> None:
        await self._bot.send_message(
            chat_id=chat_id, text=text, reply_parameters=self._reply(reply_to)
        )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if not message or not message.text:
        return

    state: AppState = context.bot_data["state"]
    if state.coordinator is None:
        raise RuntimeError("Coordinator not initialized")
    await state.coordinator.handle_message(message.chat_id, message.message_id, message.text)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    log.error("update_handler_error", exc_info=context.error)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def _post_init(application: Application) -> None:
    """Open the cache, check for yt-dlp and wire the coordinator."""
    state: AppState = application.bot_data["state"]
    settings = state.settings

    db_path = Path(settings.cache.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    cache = ArtifactCache(db)
    await cache.init_db()

    transcoder = FfmpegTranscoder(settings.media)
    downloader = YtDlpDownloader(settings.media)
    downloader_available = await downloader.is_available()
    if not downloader_available:
        log.warning("fallback_mode", reason="yt-dlp unavailable, only cached videos will be sent")

    captioner: GeminiCaptioner | None = None
    if settings.gemini_api_key is not None:
        client = genai.Client(api_key=settings.gemini_api_key.get_secret_value())
        captioner = GeminiCaptioner(client, settings.captioner)
        log.info("captioner_enabled", model=settings.captioner.model)
    else:
        log.warning("captioner_disabled", reason="GEMINI_API_KEY not set")

    state.db = db
    state.cache = cache
    state.coordinator = FetchCoordinator(
        cache=cache,
        downloader=downloader,
        transcoder=transcoder,
        frame_extractor=transcoder,
        captioner=captioner,
        delivery=TelegramDelivery(application.bot),
        settings=settings.media,
        downloader_available=downloader_available,
    )
    log.info("bot_ready", version=__version__, db_path=str(db_path))


async def _post_shutdown(application: Application) -> None:
    state: AppState = application.bot_data["state"]
    if state.db is not None:
        await state.db.close()
    log.info("bot_stopped")


def build_application(settings: Settings) -> Application:
    """Create the python-telegram-bot Application. Raises if BOT_TOKEN is missing."""
    token = settings.bot_token.get_secret_value().strip() if settings.bot_token else ""
    if not token:
        raise ReelBridgeError(
            code=ErrorCode.MISSING_CREDENTIAL,
            message="BOT_TOKEN is required.",
        )

    application = (
        Application.builder()
        .token(token)
        # Messages are handled independently; links inside one message stay sequential.
        .concurrent_updates(True)
        .connect_timeout(60)
        .read_timeout(300)
        .write_timeout(300)
        .pool_timeout(60)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )
    application.bot_data["state"] = AppState(settings=settings)
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    application.add_error_handler(handle_error)
    return application


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    setup_logging(settings)
    log.info("bot_starting", version=__version__)

    try:
        application = build_application(settings)
    except ReelBridgeError as exc:
        log.error("startup_failed", code=exc.code, message=exc.message)
        sys.exit(1)

    application.run_polling(allowed_updates=Update.ALL_TYPES)
    log.info("bot_shutdown")


if __name__ == "__main__":
    main()
