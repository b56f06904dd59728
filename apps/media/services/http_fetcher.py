import logging

import httpx

from apps.media.errors import RemoteFetchError

logger = logging.getLogger("mediastore.uploads")


class HttpFetcher:
    """Downloads remote image bytes"""

    def __init__(self, timeout: float = 10.0, transport: httpx.AsyncBaseTransport = None):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self.transport
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPStatusError as e:
            logger.warning(f"Image fetch failed: {e.response.status_code} from {url}")
            raise RemoteFetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.warning(f"Image fetch failed for {url}: {e}")
            raise RemoteFetchError(url, str(e)) from e
