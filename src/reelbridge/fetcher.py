"""HTTP page fetcher for the preview proxy.

All network I/O for scraping goes through a single Fetcher instance. The
Fetcher receives an httpx.AsyncClient via constructor injection; the proxy
lifespan owns the client lifecycle. Instagram turns away clients that do not
look like a browser, so the shared client carries a desktop Chrome signature.
"""

from __future__ import annotations

import httpx
import structlog

from reelbridge.errors import ErrorCode, ReelBridgeError

log = structlog.get_logger()

BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}


def build_http_client(timeout_seconds: float = 10.0) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(timeout_seconds),
        headers=BROWSER_HEADERS,
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


class Fetcher:
    """Fetches HTML pages and maps every failure to ``ReelBridgeError``."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, url: str) -> str:
        """Return the response body of ``url``.

        Raises ReelBridgeError on network errors, timeouts and non-2xx responses.
        """
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise ReelBridgeError(
                code=ErrorCode.PAGE_FETCH_FAILED,
                message=f"Network error fetching {url}: {exc!r}",
            ) from exc

        if not response.is_success:
            if response.status_code == 404:
                raise ReelBridgeError(
                    code=ErrorCode.PAGE_NOT_FOUND,
                    message=f"HTTP 404 fetching {url}",
                )
            raise ReelBridgeError(
                code=ErrorCode.PAGE_FETCH_FAILED,
                message=f"HTTP {response.status_code} fetching {url}",
            )

        log.info(
            "fetch_complete",
            url=url,
            status_code=response.status_code,
            content_length=len(response.text),
        )
        return response.text
