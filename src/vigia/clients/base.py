"""Shared async HTTP plumbing for the public data sources.

Every source client inherits from BaseAsyncClient, which supplies:
- a pooled httpx.AsyncClient opened by ``async with``
- a token-bucket rate limiter (public portals publish no quota, so each
  client is throttled conservatively)
- retries with exponential backoff on 429/502/503/504, timeouts and
  network errors
- a single failure type, TransportError, for everything that goes wrong
  below the parse layer

Usage:
    class SenadoClient(BaseAsyncClient):
        def __init__(self, rate_limit: int = 5):
            super().__init__(
                base_url="https://legis.senado.leg.br/dadosabertos",
                headers={"Accept": "application/json"},
                rate_limit=rate_limit,
            )

        async def get_senator(self, code: int) -> dict:
            return await self.get(f"/senador/{code}")
"""

import asyncio
import logging
from typing import Any

import httpx


logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 502, 503, 504}
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds


class RateLimiter:
    """Token bucket shared by all requests of one client.

    Args:
        rate: Maximum requests per second
    """

    def __init__(self, rate: int) -> None:
        self.rate = rate
        self.tokens: float = rate
        self.updated_at: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Take one token, sleeping until the bucket refills if empty."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            if self.updated_at is None:
                self.updated_at = loop.time()

            while self.tokens < 1:
                now = loop.time()
                self.tokens = min(self.rate, self.tokens + (now - self.updated_at) * self.rate)
                self.updated_at = now
                if self.tokens < 1:
                    await asyncio.sleep((1 - self.tokens) / self.rate)

            self.tokens -= 1
            self.updated_at = loop.time()


class TransportError(Exception):
    """Network, timeout or HTTP failure that survived every retry."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class BaseAsyncClient:
    """Rate-limited, retrying JSON client.

    Args:
        base_url: Base URL for all requests
        headers: Default headers
        rate_limit: Maximum requests per second (default: 5)
        timeout: Request timeout in seconds (default: 30)
    """

    source_name: str = "http"

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        rate_limit: int = 5,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.timeout = timeout
        self._rate_limiter = RateLimiter(rate=rate_limit)
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "BaseAsyncClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one request, retrying transient failures.

        Returns the first response with a status below 400.

        Raises:
            TransportError: On a non-retryable status, or once retries run out
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use async with context manager.")

        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"

        last_error: TransportError | None = None

        for attempt in range(_MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            logger.debug(
                "%s %s%s params=%s (attempt %d/%d)",
                method, self.base_url, endpoint, params, attempt + 1, _MAX_RETRIES + 1,
            )

            try:
                response = await self._client.request(method=method, url=endpoint, params=params)
            except httpx.TimeoutException as e:
                last_error = TransportError(f"Request timeout: {e}")
                reason = "Timeout"
            except httpx.NetworkError as e:
                last_error = TransportError(f"Network error: {e}")
                reason = "Network error"
            except httpx.HTTPError as e:
                logger.error("HTTP error for %s: %s", endpoint, e)
                raise TransportError(f"HTTP error: {e}") from e
            else:
                if response.status_code < 400:
                    return response

                body = response.text[:500]
                last_error = TransportError(
                    f"{self.source_name} request failed: {response.status_code}",
                    status_code=response.status_code,
                    response_body=body,
                )
                if response.status_code not in _RETRYABLE_STATUS_CODES:
                    logger.error("%s error: %d %s - %s", self.source_name, response.status_code, endpoint, body)
                    raise last_error
                reason = f"Retryable {response.status_code}"

            if attempt < _MAX_RETRIES:
                backoff = _BASE_BACKOFF * (2 ** attempt)
                logger.warning(
                    "%s for %s, retrying in %.1fs (attempt %d/%d)",
                    reason, endpoint, backoff, attempt + 1, _MAX_RETRIES + 1,
                )
                await asyncio.sleep(backoff)

        logger.error("%s failed after %d attempts: %s", endpoint, _MAX_RETRIES + 1, last_error)
        raise last_error or TransportError("Request failed after retries")

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET and decode JSON. The body may be an object or an array."""
        response = await self._send("GET", endpoint, params=params)
        try:
            return response.json()
        except ValueError as e:
            logger.error("Invalid JSON from %s%s: %s", self.base_url, endpoint, e)
            raise TransportError(
                f"Invalid JSON response: {e}",
                status_code=response.status_code,
                response_body=response.text[:500],
            ) from e

    async def head(self, endpoint: str, params: dict[str, Any] | None = None) -> int:
        """HEAD request used by reachability probes. Returns the status code."""
        response = await self._send("HEAD", endpoint, params=params)
        return response.status_code
