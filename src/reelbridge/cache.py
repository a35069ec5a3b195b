"""Caches: the SQLite artifact cache and the in-memory page metadata cache.

All ArtifactCache operations catch ``aiosqlite.Error`` internally and degrade
gracefully: read failures return ``None`` (treated as cache miss by callers),
write failures are logged and reported as ``False``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import aiosqlite
import structlog

from reelbridge.models.cache import ArtifactEntry, MetadataEntry, PageMetadata

log = structlog.get_logger()

# Table and column names are kept from the first deployment so existing
# cache files stay readable.
_CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS cache (
    reel_id TEXT PRIMARY KEY,
    file_id TEXT NOT NULL,
    caption TEXT
)
"""


class ArtifactCache:
    """SQLite-backed ``provider:video_id`` → Telegram file_id cache."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_CACHE_TABLE)

        # Older cache files were created without the caption column.
        cursor = await self._db.execute("PRAGMA table_info(cache)")
        columns = {row[1] for row in await cursor.fetchall()}
        if "caption" not in columns:
            await self._db.execute("ALTER TABLE cache ADD COLUMN caption TEXT")
            log.info("cache_schema_migrated", added_column="caption")

        await self._db.commit()

    async def get(self, key: str) -> ArtifactEntry | None:
        """Read an entry. Returns ``None`` on cache miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT reel_id, file_id, caption FROM cache WHERE reel_id = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return ArtifactEntry(key=row[0], artifact_handle=row[1], caption=row[2] or None)
        except aiosqlite.Error:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None

    async def put(self, key: str, artifact_handle: str, caption: str | None = None) -> bool:
        """Upsert an entry. Non-fatal on failure; returns whether it was stored."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO cache (reel_id, file_id, caption) VALUES (?, ?, ?)",
                (key, artifact_handle, caption),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=key, exc_info=True)
            return False
        log.info("cache_stored", key=key, has_caption=caption is not None)
        return True


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MetadataCache:
    """Bounded in-memory map of reel ID → page metadata with a fixed TTL.

    Freshness depends only on the time since the entry was stored. Callers run
    on a single event loop, so no locking is done here; wrap it in a lock
    before sharing it between OS threads.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 1024,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, MetadataEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: MetadataEntry) -> bool:
        return self._clock() - entry.fetched_at < self._ttl

    def get(self, key: str) -> PageMetadata | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._is_fresh(entry):
            del self._entries[key]
            return None
        return entry.metadata

    def set(self, key: str, metadata: PageMetadata) -> None:
        # Re-insert so dict order tracks write time for eviction.
        self._entries.pop(key, None)
        self._entries[key] = MetadataEntry(key=key, metadata=metadata, fetched_at=self._clock())
        while len(self._entries) > self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    def prune(self) -> int:
        """Drop every stale entry. Returns the number removed."""
        stale = [key for key, entry in self._entries.items() if not self._is_fresh(entry)]
        for key in stale:
            del self._entries[key]
        return len(stale)
