"""
Async HTTP client with retry logic for calls to remote AI agents.
"""

import asyncio
import logging
import random
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class AsyncHttpClient:
    """
    Thin httpx wrapper that retries network failures and 5xx responses
    with exponential backoff. 4xx responses are raised immediately.
    """

    def __init__(
        self,
        timeout: int = 60,
        max_retries: int = 2,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=50)
        )

    async def _backoff(self, attempt: int, url: str) -> None:
        delay = (2 ** attempt) + random.uniform(0, 1)
        logger.info(f"Retrying {url} in {delay:.2f} seconds")
        await asyncio.sleep(delay)

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """
        POST a JSON payload, retrying transient failures.

        Args:
            url: Target URL
            payload: JSON body
            headers: Extra request headers

        Returns:
            Successful httpx.Response

        Raises:
            httpx.HTTPStatusError: On a 4xx response or a 5xx after all retries
            httpx.RequestError: On network failure after all retries
        """
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers or {})
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(f"POST {url} (attempt {attempt + 1})")
                response = await self.client.post(url, json=payload, headers=request_headers)

                if response.status_code < 400:
                    return response

                if 400 <= response.status_code < 500:
                    logger.warning(f"Client error {response.status_code} for {url}")
                    response.raise_for_status()

                logger.warning(f"Server error {response.status_code} for {url}, attempt {attempt + 1}")
                last_exception = httpx.HTTPStatusError(
                    f"HTTP {response.status_code}",
                    request=response.request,
                    response=response
                )

            except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as e:
                logger.warning(f"Network error for {url}, attempt {attempt + 1}: {e}")
                last_exception = e

            if attempt < self.max_retries:
                await self._backoff(attempt, url)

        logger.error(f"All retries exhausted for {url}")
        if last_exception:
            raise last_exception
        raise httpx.RequestError(f"Failed to complete request to {url}")

    async def close(self) -> None:
        """Close the HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
