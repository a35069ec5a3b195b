from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    DOWNLOADER_UNAVAILABLE = "DOWNLOADER_UNAVAILABLE"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    COMPRESS_FAILED = "COMPRESS_FAILED"
    VIDEO_TOO_LONG = "VIDEO_TOO_LONG"
    FRAME_EXTRACT_FAILED = "FRAME_EXTRACT_FAILED"
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    PAGE_FETCH_FAILED = "PAGE_FETCH_FAILED"
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"


class ReelBridgeError(Exception):
    """Raised by adapters for all expected failure conditions.

    Caught by the coordinator (turned into a per-link chat notice) and by the
    metadata resolver (turned into a 404).
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
