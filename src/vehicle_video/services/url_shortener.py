"""
Best-effort URL shortening through is.gd.

shorten() never raises: whatever goes wrong, the caller gets the original URL back.
"""

import logging
from typing import Optional

import httpx

from vehicle_video.utils.config import get_settings

logger = logging.getLogger(__name__)


class UrlShortener:
    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or get_settings().url_shortener_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def shorten(self, url: str, log_id: str = "") -> str:
        try:
            client = await self._get_client()
            response = await client.get(self.endpoint, params={"format": "json", "url": url})
            response.raise_for_status()
            data = response.json()
            short_url = (data.get("shorturl") or data.get("shortUrl")) if isinstance(data, dict) else None
            if isinstance(short_url, str) and short_url:
                logger.info(f"[{log_id}] URL shortened: {short_url}")
                return short_url
            logger.warning(f"[{log_id}] URL shortener returned unexpected response, using original URL: {data}")
        except Exception as exc:
            logger.warning(f"[{log_id}] URL shortening failed, using original URL: {exc}")
        return url

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


url_shortener = UrlShortener()
