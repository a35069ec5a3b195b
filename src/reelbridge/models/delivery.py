from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class DeliveredVideo(BaseModel):
    """What the chat transport reports back after sending a video."""

    message_id: int
    artifact_id: str | None = None  # None when the transport returned no video object


class LinkOutcome(StrEnum):
    CACHED = "cached"
    DELIVERED = "delivered"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"
