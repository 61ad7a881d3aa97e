"""Async HTTP client for the feed and poll endpoints."""

import logging
from typing import Any, AsyncIterator, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from .config import BackoffStrategy, IngestionConfig

logger = logging.getLogger(__name__)


class FeedClient:
    """Wrapper around httpx.AsyncClient used by every ingestion worker.

    Features:
    - Connection-level retry (transport errors only) with configurable backoff
    - Line-oriented streaming for the push feed
    - Shared connection pool across workers
    """

    def __init__(
        self,
        config: Optional[IngestionConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the feed client.

        Args:
            config: Ingestion configuration (defaults if None)
            client: Preconfigured httpx client (created if None)
        """
        self.config = config or IngestionConfig()
        self.client = client or httpx.AsyncClient(
            timeout=self.config.timeout,
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
        )
        self._retry = self._build_retry_decorator()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def get(self, url: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        """GET a URL, retrying transport failures.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response (not retried)
            httpx.TransportError: When every attempt failed to connect/read
        """

        @self._retry
        async def _request() -> httpx.Response:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response

        return await _request()

    async def get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET a URL and decode the JSON body."""
        response = await self.get(url, params=params)
        return response.json()

    async def get_text(self, url: str) -> str:
        """GET a URL and return the body as text."""
        response = await self.get(url)
        return response.text

    async def stream_lines(self, url: str) -> AsyncIterator[str]:
        """Open a long-lived streaming GET and yield each line as it arrives.

        The read timeout is disabled; the connection is expected to stay
        open until the server closes it.
        """
        timeout = httpx.Timeout(self.config.timeout, read=None)
        async with self.client.stream("GET", url, timeout=timeout) as response:
            response.raise_for_status()
            logger.info(f"Connected to stream {url} (status {response.status_code})")
            async for line in response.aiter_lines():
                yield line

    def _build_retry_decorator(self):
        """Build retry decorator based on configuration."""
        retry_config = self.config.retry

        if retry_config.backoff == BackoffStrategy.EXPONENTIAL:
            wait_strategy = wait_exponential(
                multiplier=retry_config.initial_delay,
                max=retry_config.max_delay,
            )
        else:  # CONSTANT
            wait_strategy = wait_fixed(retry_config.initial_delay)

        return retry(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(retry_config.max_attempts),
            wait=wait_strategy,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
