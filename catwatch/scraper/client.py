"""Catwatch — Async Listing Client.

Fetches listing pages over HTTP with httpx.AsyncClient:
  - Browser-like headers with a User-Agent picked from config
  - Fixed timeout per request
  - Exactly one retry after a fixed backoff, for timeouts and
    network-level failures only
  - Non-2xx responses fail immediately with FetchError(http_status)
"""

from __future__ import annotations

import random
from typing import Optional

import httpx

from catwatch.config import ListingConfig
from catwatch.errors import FetchError
from catwatch.utils.logger import get_logger
from catwatch.utils.resilience import call_with_retry

logger = get_logger(__name__)

# ── Browser-like headers common to all requests ──────────
_COMMON_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "nl,en-US;q=0.7,en;q=0.3",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

_FETCH_RETRIES = 1


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, FetchError) and error.is_transient


class ListingClient:
    """Async HTTP client for the listing source.

    Attributes:
        config: Listing configuration (timeout, backoff, user agents).
        total_requests: Number of successful page fetches this session.
    """

    def __init__(self, config: ListingConfig) -> None:
        self.config = config
        self.total_requests: int = 0
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the httpx.AsyncClient."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    **_COMMON_HEADERS,
                    "User-Agent": random.choice(self.config.user_agents),
                },
                follow_redirects=True,
                timeout=httpx.Timeout(self.config.timeout_seconds),
            )
        return self._client

    async def fetch(self, url: str) -> str:
        """Return the body of one listing page.

        Args:
            url: Absolute page URL.

        Returns:
            The response text.

        Raises:
            FetchError: After the single retry for transient failures, or
                immediately for a non-2xx status.
        """
        logger.info("Fetching %s", url)
        body = await call_with_retry(
            self._fetch_once,
            url,
            retries=_FETCH_RETRIES,
            backoff_seconds=self.config.retry_backoff_seconds,
            should_retry=_is_transient,
            label=f"Fetch {url}",
        )
        self.total_requests += 1
        return body

    async def _fetch_once(self, url: str) -> str:
        """Single GET, with httpx errors mapped onto FetchError kinds."""
        client = self._get_client()
        try:
            resp = await client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(FetchError.TIMEOUT, url, str(e) or "timed out") from e
        except httpx.TransportError as e:
            raise FetchError(FetchError.NETWORK, url, str(e) or type(e).__name__) from e

        if not resp.is_success:
            raise FetchError(
                FetchError.HTTP_STATUS, url, resp.reason_phrase, status_code=resp.status_code,
            )

        logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
        return resp.text

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("HTTP client closed (total requests: %d)", self.total_requests)

    async def __aenter__(self) -> "ListingClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
