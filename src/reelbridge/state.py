"""Application state container.

AppState is created once per process by the entrypoint that runs (the bot's
``post_init`` hook or the proxy's lifespan) and passed to the handlers.
Each entrypoint fills only the fields it uses:
  bot:   db, cache, coordinator
  proxy: http_client, metadata_cache, resolver
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import aiosqlite
    import httpx

    from reelbridge.cache import ArtifactCache, MetadataCache
    from reelbridge.config import Settings
    from reelbridge.coordinator import FetchCoordinator
    from reelbridge.resolver import MetadataResolver


@dataclass
class AppState:
    """Holds all shared runtime state for one process."""

    settings: Settings

    # Bot
    db: aiosqlite.Connection | None = None
    cache: ArtifactCache | None = None
    coordinator: FetchCoordinator | None = None

    # Proxy
    http_client: httpx.AsyncClient | None = None
    metadata_cache: MetadataCache | None = None
    resolver: MetadataResolver | None = None
