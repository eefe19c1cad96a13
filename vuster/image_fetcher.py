"""
ImageFetcher - Downloads remote thumbnails into memory.
"""

import asyncio
import logging
from typing import Optional

import httpx


class ImageFetcher:
    """
    Downloads images over HTTP with bounded concurrency.

    Every failure (non-2xx, network error, timeout, malformed URL) yields
    None. Callers can only skip the candidate, so the cause is logged and
    not returned.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        max_concurrency: int = 32,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize fetcher.

        Args:
            client: Optional shared client; one is created and owned otherwise
            timeout: Per-request timeout in seconds
            max_concurrency: Maximum simultaneous downloads
            logger: Optional logger instance
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.logger = logger or logging.getLogger(__name__)

    async def fetch(self, url: Optional[str]) -> Optional[bytes]:
        """
        Download a single image.

        Args:
            url: Source address

        Returns:
            Response body, or None if the image is unavailable
        """
        if not url:
            self.logger.warning("Image fetch skipped: empty URL")
            return None

        async with self._semaphore:
            try:
                response = await self._client.get(url)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                self.logger.warning(f"Image fetch failed: {url} (HTTP {e.response.status_code})")
                return None
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
                self.logger.warning(f"Image fetch failed: {url!r} ({type(e).__name__}: {e})")
                return None

        return response.content

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> 'ImageFetcher':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
