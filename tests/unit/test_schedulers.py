"""Unit tests for reelbridge.schedulers."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from reelbridge.cache import MetadataCache
from reelbridge.config import ProxySettings, Settings
from reelbridge.models.cache import PageMetadata
from reelbridge.schedulers import run_metadata_prune_scheduler
from reelbridge.state import AppState


async def test_prunes_stale_metadata_each_interval() -> None:
    start = datetime(2025, 1, 1, tzinfo=UTC)
    now = [start]
    cache = MetadataCache(ttl_seconds=300, clock=lambda: now[0])
    cache.set(
        "OLD",
        PageMetadata(
            title="t",
            description="d",
            image_url="https://cdn.example/t.jpg",
            source_url="https://www.instagram.com/reel/OLD/",
        ),
    )
    now[0] = start + timedelta(seconds=301)
    state = AppState(
        settings=Settings(proxy=ProxySettings(prune_interval_seconds=42)),
        metadata_cache=cache,
    )

    # second sleep ends the loop
    sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])
    with patch("reelbridge.schedulers.asyncio.sleep", sleep), pytest.raises(asyncio.CancelledError):
        await run_metadata_prune_scheduler(state)

    sleep.assert_awaited_with(42)
    assert len(cache) == 0
