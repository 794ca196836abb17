"""
HTTP client utilities for bucketkit
"""

import asyncio
import logging
from typing import Optional, Dict

import httpx

logger = logging.getLogger(__name__)


class HttpClient:
    """
    HTTP client wrapper with connection pooling and retry logic.

    Retries cover transport failures only (connection refused, reset, read
    timeout). HTTP error statuses are returned to the caller untouched.
    """

    def __init__(
        self,
        timeout: float = 30,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=100),
            follow_redirects=False,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[bytes] = None,
        stream: bool = False,
    ) -> httpx.Response:
        """
        Make an HTTP request with exponential backoff retry logic.

        With ``stream=True`` the body is left unread; the caller must read or
        close the response.
        """
        for attempt in range(self.max_retries):
            try:
                request = self._client.build_request(method, url, headers=headers, content=content)
                return await self._client.send(request, stream=stream)
            except httpx.RequestError as exc:
                if attempt < self.max_retries - 1:
                    wait_time = min(1000 * (2 ** attempt), 10000) / 1000
                    logger.debug(
                        "[bucketkit][Http] attempt=%s method=%s url=%s error=%s retryIn=%ss",
                        attempt + 1, method, url, exc, wait_time,
                    )
                    await asyncio.sleep(wait_time)
                else:
                    raise

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
