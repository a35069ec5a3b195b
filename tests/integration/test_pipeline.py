"""Integration test for a chat message travelling through the whole pipeline.

Real SQLite artifact cache on disk, fake tools and chat transport. The same
message is sent twice: the first pass downloads and uploads, the second is
answered entirely from the cache, including after a restart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite

from reelbridge.cache import ArtifactCache
from reelbridge.coordinator import FetchCoordinator
from reelbridge.models.delivery import LinkOutcome

if TYPE_CHECKING:
    from pathlib import Path

_MESSAGE = "check this https://instagram.com/reel/XYZ999 and https://youtu.be/abc"


def _coordinator(cache, downloader, transcoder, captioner, delivery, settings) -> FetchCoordinator:
    return FetchCoordinator(
        cache=cache,
        downloader=downloader,
        transcoder=transcoder,
        frame_extractor=transcoder,
        captioner=captioner,
        delivery=delivery,
        settings=settings,
    )


async def test_message_is_delivered_then_served_from_cache(
    tmp_path: Path, downloader, transcoder, captioner, delivery, media_settings
) -> None:
    db_path = tmp_path / "cache.db"

    async with aiosqlite.connect(db_path) as db:
        cache = ArtifactCache(db)
        await cache.init_db()
        coordinator = _coordinator(cache, downloader, transcoder, captioner, delivery, media_settings)

        first = await coordinator.handle_message(42, 1, _MESSAGE)
        second = await coordinator.handle_message(42, 2, _MESSAGE)

    assert first == [LinkOutcome.DELIVERED, LinkOutcome.DELIVERED]
    assert second == [LinkOutcome.CACHED, LinkOutcome.CACHED]
    assert [url for url, _ in downloader.calls] == [
        "https://instagram.com/reel/XYZ999",
        "https://youtu.be/abc",
    ]
    assert [v.video for v in delivery.videos[2:]] == ["file-101", "file-102"]
    assert all(v.caption == "кот на диване" for v in delivery.videos[2:])
    assert all(v.reply_to == 2 for v in delivery.videos[2:])
    # only the database survives; every per-link work dir is gone
    assert [p for p in tmp_path.rglob("*") if not p.name.startswith("cache.db")] == []

    # Cache survives a restart
    async with aiosqlite.connect(db_path) as db:
        cache = ArtifactCache(db)
        await cache.init_db()
        coordinator = _coordinator(cache, downloader, transcoder, captioner, delivery, media_settings)

        third = await coordinator.handle_message(42, 3, "https://www.youtube.com/watch?v=abc&t=5")

    assert third == [LinkOutcome.CACHED]
    assert len(downloader.calls) == 2
    assert delivery.videos[-1].video == "file-102"
