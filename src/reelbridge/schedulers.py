"""Background scheduler coroutines."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from reelbridge.state import AppState

log = structlog.get_logger()


async def run_metadata_prune_scheduler(state: AppState) -> None:
    """Drop stale page metadata on the configured interval until cancelled."""
    interval_seconds = state.settings.proxy.prune_interval_seconds

    while True:
        await asyncio.sleep(interval_seconds)
        if state.metadata_cache is not None:
            removed = state.metadata_cache.prune()
            log.debug(
                "metadata_cache_pruned",
                removed=removed,
                remaining=len(state.metadata_cache),
            )
