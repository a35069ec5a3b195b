"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (REELBRIDGE__MEDIA__MAX_UPLOAD_MB=50)
  2. reelbridge.yaml         (searched in cwd, then platform config dir)
  3. Hardcoded defaults

Three flat variables used by existing deployments are read as-is:
``BOT_TOKEN``, ``GEMINI_API_KEY`` and ``PORT``.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("reelbridge")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "cache.db")

DEFAULT_PORT = 3666


def _find_config_file() -> str | None:
    """Return the path of the first reelbridge.yaml found, or None."""
    candidates = [
        Path("reelbridge.yaml"),
        Path(platformdirs.user_config_dir("reelbridge")) / "reelbridge.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ProxySettings(BaseModel):
    host: str = "0.0.0.0"
    fetch_timeout_seconds: float = 10.0
    metadata_ttl_seconds: int = 300
    metadata_max_entries: int = 1024
    prune_interval_seconds: int = 600


class CacheSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH


class MediaSettings(BaseModel):
    max_upload_mb: float = 50.0  # Telegram bot API upload ceiling
    target_size_mb: float = 45.0
    audio_bitrate_kbps: int = 128
    min_video_bitrate_kbps: int = 100
    download_timeout_seconds: float = 60.0
    socket_timeout_seconds: float = 30.0
    compress_timeout_seconds: float = 120.0
    probe_timeout_seconds: float = 10.0
    frame_max_dimension: int = 1024
    fallback_frame_seconds: float = 3.0
    temp_dir: str = Field(default_factory=tempfile.gettempdir)
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    download_format: str = (
        "best[height<=720][filesize<50M][ext=mp4]/best[height<=480][ext=mp4]/best[ext=mp4]"
    )


class CaptionerSettings(BaseModel):
    model: str = "gemini-2.5-flash"
    prompt: str = (
        "Опиши кадр видео максимум 3 словами на русском. Только слова, без точек и лишнего:"
    )
    max_words: int = 3


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: REELBRIDGE__PROXY__HOST=127.0.0.1
        env_prefix="REELBRIDGE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        populate_by_name=True,
    )

    bot_token: SecretStr | None = Field(default=None, validation_alias="BOT_TOKEN")
    gemini_api_key: SecretStr | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    port: int = Field(default=DEFAULT_PORT, validation_alias="PORT")

    proxy: ProxySettings = ProxySettings()
    cache: CacheSettings = CacheSettings()
    media: MediaSettings = MediaSettings()
    captioner: CaptionerSettings = CaptionerSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
