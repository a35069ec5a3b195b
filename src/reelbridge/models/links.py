from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Provider(StrEnum):
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"


class VideoReference(BaseModel):
    """A provider video found in message text.

    Identity is ``(provider, video_id)``: references that differ only in the
    URL they were read from compare equal.
    """

    model_config = ConfigDict(frozen=True)

    provider: Provider
    video_id: str
    source_url: str

    @property
    def cache_key(self) -> str:
        return f"{self.provider}:{self.video_id}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VideoReference):
            return NotImplemented
        return (self.provider, self.video_id) == (other.provider, other.video_id)

    def __hash__(self) -> int:
        return hash((self.provider, self.video_id))
