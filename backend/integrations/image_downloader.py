# backend/integrations/image_downloader.py
"""
HTTP fetching for product images and source pages.
Every request has an explicit timeout and responses are size-capped.
"""

import logging
from typing import Dict, Optional

import httpx

from config import get_settings
from errors import ImageDownloadError

logger = logging.getLogger(__name__)

# Content types we accept for image downloads; some CDNs send octet-stream
IMAGE_CONTENT_TYPES = ("image/", "application/octet-stream", "binary/octet-stream")


class ImageDownloader:
    """Fetches images and HTML pages for the image source providers."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        max_bytes: Optional[int] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.timeout_seconds = timeout_seconds or settings.download_timeout_seconds
        self.max_bytes = max_bytes or settings.max_download_bytes
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport

    def _headers(self, accept: str) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": accept,
            "Accept-Language": "en-US,en;q=0.9",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        )

    async def download(self, url: str) -> bytes:
        """
        Download image bytes.

        Raises:
            ImageDownloadError: HTTP error, timeout, wrong content type, or
                body larger than max_bytes
        """
        headers = self._headers("image/avif,image/webp,image/*,*/*;q=0.8")

        try:
            async with self._client() as client:
                async with client.stream("GET", url, headers=headers) as response:
                    if response.status_code != 200:
                        raise ImageDownloadError(url, f"HTTP {response.status_code}")

                    content_type = response.headers.get("content-type", "").lower()
                    if content_type and not content_type.startswith(IMAGE_CONTENT_TYPES):
                        raise ImageDownloadError(url, f"not an image ({content_type})")

                    declared = response.headers.get("content-length")
                    if declared and declared.isdigit() and int(declared) > self.max_bytes:
                        raise ImageDownloadError(url, f"too large ({declared} bytes)")

                    chunks = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > self.max_bytes:
                            raise ImageDownloadError(url, f"exceeded {self.max_bytes} bytes")
                        chunks.append(chunk)

        except httpx.TimeoutException as e:
            raise ImageDownloadError(url, "timeout") from e
        except httpx.HTTPError as e:
            raise ImageDownloadError(url, str(e) or type(e).__name__) from e

        logger.debug(f"Downloaded {received} bytes from {url}")
        return b"".join(chunks)

    async def fetch_text(self, url: str, params: Optional[Dict[str, str]] = None) -> Optional[str]:
        """
        Fetch an HTML or JSON page.
        Returns the body as text, or None on failure.
        """
        headers = self._headers("text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8")

        try:
            async with self._client() as client:
                response = await client.get(url, headers=headers, params=params)

                if response.status_code != 200:
                    logger.debug(f"GET {url} returned HTTP {response.status_code}")
                    return None

                return response.text

        except httpx.TimeoutException:
            logger.warning(f"Timeout fetching {url}")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Error fetching {url}: {e}")
            return None
