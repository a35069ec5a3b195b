"""Integration test fixtures.

Provides the preview proxy app with a fully wired AppState (real httpx client,
fresh metadata cache) and an ASGI client pointed at it. Collaborator fakes for
the bot pipeline come from tests/conftest.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from reelbridge.cache import MetadataCache
from reelbridge.config import Settings
from reelbridge.fetcher import Fetcher, build_http_client
from reelbridge.proxy import create_app
from reelbridge.resolver import MetadataResolver
from reelbridge.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.applications import Starlette


@pytest.fixture()
async def app() -> AsyncGenerator[Starlette, None]:
    """Proxy app with state wired the way its lifespan does it.

    ASGITransport does not run the lifespan, so the prune scheduler is not
    started here.
    """
    settings = Settings()
    application = create_app(settings)
    async with build_http_client() as http_client:
        metadata_cache = MetadataCache()
        application.state.reelbridge = AppState(
            settings=settings,
            http_client=http_client,
            metadata_cache=metadata_cache,
            resolver=MetadataResolver(Fetcher(http_client), metadata_cache),
        )
        yield application


@pytest.fixture()
async def client(app: Starlette) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://proxy.test") as c:
        yield c
