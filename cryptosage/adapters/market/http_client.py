"""
HTTP client shared by market-data provider adapters.
"""

import asyncio
import json
from typing import Any, Optional

import httpx

from cryptosage.domain.exceptions import (
    BadServerResponseError,
    DecodeError,
    MarketDataError,
    RateLimitedError,
    TransientNetworkError,
)
from cryptosage.infrastructure.logging import get_logger

logger = get_logger(__name__)


class MarketHTTPClient:
    """
    Thin async JSON GET client.

    Maps transport and status failures onto the market data error
    taxonomy. Retrying is left to the caller.
    """

    def __init__(
        self,
        base_url: str,
        provider: str,
        request_timeout: float = 30.0,
        resource_timeout: float = 60.0,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Provider API base URL
            provider: Provider name used in errors and logs
            request_timeout: Per-request connect/read timeout in seconds
            resource_timeout: Upper bound for a whole request in seconds
            headers: Extra headers sent with every request
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.provider = provider
        self.request_timeout = request_timeout
        self.resource_timeout = resource_timeout
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it on first use."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.request_timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        GET a path and decode the JSON body.

        Args:
            path: Endpoint path relative to the base URL
            params: Query parameters; None values are dropped

        Returns:
            Decoded JSON value.

        Raises:
            RateLimitedError: On HTTP 429.
            BadServerResponseError: On any other non-2xx status.
            TransientNetworkError: On timeouts and connection failures.
            DecodeError: When the body cannot be decoded as JSON.
            MarketDataError: On redirect loops and malformed URLs.
        """
        url = f"{self.base_url}{path}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        logger.debug("GET request", provider=self.provider, url=url, params=query)

        try:
            response = await asyncio.wait_for(
                self.client.get(url, params=query),
                timeout=self.resource_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransientNetworkError("Request exceeded resource timeout", self.provider) from e
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"Request timed out: {e}", self.provider) from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"Connection failed: {e}", self.provider) from e
        except httpx.DecodingError as e:
            raise DecodeError(f"Failed to decode response body: {e}", self.provider) from e
        except httpx.TooManyRedirects as e:
            raise MarketDataError(f"Too many redirects: {e}", self.provider) from e
        except httpx.RequestError as e:
            raise TransientNetworkError(f"Request failed: {e}", self.provider) from e
        except httpx.InvalidURL as e:
            raise MarketDataError(f"Invalid request URL: {e}", self.provider) from e

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        """
        Check status and decode the body.

        Args:
            response: HTTP response object

        Returns:
            Parsed JSON body.
        """
        status = response.status_code

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning("Rate limited", provider=self.provider, retry_after=retry_after)
            try:
                retry_seconds = float(retry_after) if retry_after else None
            except ValueError:
                retry_seconds = None
            raise RateLimitedError(self.provider, retry_after=retry_seconds)

        if not 200 <= status < 300:
            logger.error("Bad server response", provider=self.provider, status=status)
            raise BadServerResponseError(status, self.provider)

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Failed to parse response", provider=self.provider, status=status)
            raise DecodeError(f"Failed to parse response: {e}", self.provider) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
