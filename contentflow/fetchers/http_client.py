"""
Retrying httpx transport for fetch strategies.

Strategies only map upstream payloads to RawMessage objects; timeouts,
retries on 429/5xx and transport errors, and backoff live here.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


@dataclass
class RetryConfig:
    """
    Retry budget and backoff for one client.

    The n-th retry waits ``min(max_backoff_seconds, base_delay * 2**n)`` plus
    up to ``jitter_factor`` of that; a 429 with a numeric Retry-After header
    waits for the header value instead, still capped by ``max_backoff_seconds``.
    """

    max_retries: int = 3
    max_backoff_seconds: float = 30.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def delay_for(self, retry: int, response: httpx.Response | None = None) -> float:
        if response is not None and response.status_code == 429:
            try:
                return min(float(response.headers["Retry-After"]), self.max_backoff_seconds)
            except (KeyError, ValueError):
                pass
        delay = min(self.base_delay * 2**retry, self.max_backoff_seconds)
        return delay * (1 + self.jitter_factor * random.random())


class HTTPClientError(Exception):
    """A request failed for good: non-retryable status, or retries used up."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class HTTPClient:
    """
    JSON-over-HTTP client with retries.

    The httpx client is opened on first use and kept until ``close()``, so a
    strategy can hold one HTTPClient for the life of the service.

    Example:
        async with HTTPClient(RetryConfig(max_retries=2)) as client:
            response = await client.post(url, json_body={"peer": "news_chan"})
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HTTPClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def post(
        self,
        url: str,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self.request("POST", url, json=json_body, headers=headers)

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Raises:
            HTTPClientError: 4xx other than 429, or still failing after
                ``max_retries`` retries.
        """
        retries = self.retry_config.max_retries
        retry = 0
        while True:
            response: httpx.Response | None = None
            try:
                response = await self.client.request(method, url, **kwargs)
            except _RETRYABLE_EXCEPTIONS as e:
                failure = f"{type(e).__name__}: {e}"
                if retry >= retries:
                    raise HTTPClientError(
                        f"{method} {url} failed after {retry + 1} attempts: {failure}"
                    ) from e
            else:
                if response.status_code < 400:
                    return response
                if response.status_code not in _RETRYABLE_STATUS or retry >= retries:
                    attempts = f" after {retry + 1} attempts" if retry else ""
                    raise HTTPClientError(
                        f"{method} {url} returned {response.status_code}{attempts}",
                        status_code=response.status_code,
                        response_body=response.text,
                    )
                failure = f"status {response.status_code}"

            delay = self.retry_config.delay_for(retry, response)
            retry += 1
            logger.warning(
                "%s %s: %s, retry %d/%d in %.2fs",
                method, url, failure, retry, retries, delay,
            )
            await asyncio.sleep(delay)
