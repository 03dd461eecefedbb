from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from page_translate.errors import FetchError


class ImageFetcher:
    """
    Downloads raw image bytes.

    Images are fetched as opaque binary bodies and never decoded here, so
    cross-origin images work the same as same-origin ones. Bytes handed to
    `preload` are served once by the next `fetch` of that src without a request.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None) -> None:
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout
        self._preloaded: Dict[str, bytes] = {}
        self.logger = logging.getLogger(__name__)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True, timeout=self.timeout)
        return self._client

    def preload(self, src: str, data: bytes) -> None:
        self._preloaded[src] = data

    async def fetch(self, src: str) -> bytes:
        preloaded = self._preloaded.pop(src, None)
        if preloaded is not None:
            self.logger.debug("Image served from preload: %s", src)
            return preloaded
        try:
            response = await self.client.get(src)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(src, f"HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(src, f"{exc.__class__.__name__}: {exc}") from exc
        if not response.content:
            raise FetchError(src, "empty body")
        self.logger.debug("Image fetched as blob: %s (%d bytes)", src, len(response.content))
        return response.content

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
        self._preloaded.clear()
