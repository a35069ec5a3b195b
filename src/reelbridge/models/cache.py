from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ArtifactEntry(BaseModel):
    """A video already delivered to Telegram, keyed by ``provider:video_id``."""

    model_config = ConfigDict(frozen=True)

    key: str
    artifact_handle: str  # Telegram file_id, not a filesystem path
    caption: str | None = None


class PageMetadata(BaseModel):
    """Open Graph fields for a reel page, sanitized and with fallbacks applied."""

    title: str
    description: str
    image_url: str | None = None  # None: serve the proxy's own placeholder
    video_url: str | None = None
    video_mime_type: str = "video/mp4"
    source_url: str


class MetadataEntry(BaseModel):
    key: str
    metadata: PageMetadata
    fetched_at: datetime
