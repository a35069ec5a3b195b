"""Open Graph preview proxy entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the Starlette lifespan context manager
- Serve the preview, placeholder and landing routes
- Start uvicorn
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import HTMLResponse, PlainTextResponse, Response
from starlette.routing import Route

from reelbridge import __version__
from reelbridge.cache import MetadataCache
from reelbridge.config import Settings
from reelbridge.fetcher import Fetcher, build_http_client
from reelbridge.links import parse_reel_id
from reelbridge.logs import setup_logging
from reelbridge.pages import (
    DEFAULT_THUMBNAIL_PATH,
    EXAMPLE_REEL_ID,
    render_default_thumbnail,
    render_landing_page,
    render_preview_page,
)
from reelbridge.resolver import MetadataResolver
from reelbridge.schedulers import run_metadata_prune_scheduler
from reelbridge.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

log = structlog.get_logger()

NOT_FOUND_BODY = "Не удалось получить данные Reels"
SERVER_ERROR_BODY = "Внутренняя ошибка сервера"


def _base_url(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


async def preview(request: Request) -> Response:
    segment: str = request.path_params["reel_id"]
    state: AppState = request.app.state.reelbridge
    route_log = log.bind(route="preview", reel_id=segment)

    reel_id = parse_reel_id(segment)
    if reel_id is None:
        route_log.info("invalid_reel_id")
        return PlainTextResponse(NOT_FOUND_BODY, status_code=404)

    if state.resolver is None:
        raise RuntimeError("Proxy components (resolver) not initialized")

    try:
        metadata = await state.resolver.resolve(reel_id)
        if metadata is None:
            return PlainTextResponse(NOT_FOUND_BODY, status_code=404)
        return HTMLResponse(render_preview_page(metadata, str(request.url), _base_url(request)))
    except Exception:
        route_log.error("route_unexpected_error", exc_info=True)
        return PlainTextResponse(SERVER_ERROR_BODY, status_code=500)


async def default_thumbnail(request: Request) -> Response:
    return Response(render_default_thumbnail(), media_type="image/svg+xml")


async def landing(request: Request) -> Response:
    return HTMLResponse(render_landing_page(_base_url(request)))


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> Starlette:
    """Build the Starlette app. Shared resources live for the lifespan."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        http_client = build_http_client(settings.proxy.fetch_timeout_seconds)
        metadata_cache = MetadataCache(
            ttl_seconds=settings.proxy.metadata_ttl_seconds,
            max_entries=settings.proxy.metadata_max_entries,
        )
        state = AppState(
            settings=settings,
            http_client=http_client,
            metadata_cache=metadata_cache,
            resolver=MetadataResolver(Fetcher(http_client), metadata_cache),
        )
        app.state.reelbridge = state
        prune_task = asyncio.create_task(run_metadata_prune_scheduler(state))
        log.info("proxy_started", version=__version__, port=settings.port)

        try:
            yield
        finally:
            prune_task.cancel()
            with suppress(asyncio.CancelledError):
                await prune_task
            await http_client.aclose()
            log.info("proxy_stopping")

    return Starlette(
        routes=[
            Route("/", landing, methods=["GET"]),
            Route(DEFAULT_THUMBNAIL_PATH, default_thumbnail, methods=["GET"]),
            Route("/tg/{reel_id}", preview, methods=["GET"]),
        ],
        middleware=[Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET"])],
        lifespan=lifespan,
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    setup_logging(settings)
    log.info(
        "proxy_starting",
        version=__version__,
        home=f"http://localhost:{settings.port}",
        example=f"http://localhost:{settings.port}/tg/{EXAMPLE_REEL_ID}",
    )

    uvicorn.run(
        create_app(settings),
        host=settings.proxy.host,
        port=settings.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
