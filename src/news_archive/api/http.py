"""News API HTTP client.

Async HTTP client for the vendor REST API. Every failure is surfaced to the
caller as a typed error; the client never retries on its own.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from news_archive import __version__
from news_archive.api.auth import ApiAuth

logger = logging.getLogger(__name__)


class NewsAPIError(Exception):
    """Base exception for news API errors."""

    def __init__(self, message: str, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class TransportError(NewsAPIError):
    """Raised when the request could not be sent or the response not read."""


class UnexpectedResponseError(NewsAPIError):
    """Raised for any non-2xx response."""

    def __init__(self, status_code: int, body: str, url: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"unexpected api response with code: {status_code}, message: {body}",
            url=url,
        )


class DecodeError(NewsAPIError):
    """Raised when a response body cannot be decoded."""


@dataclass
class NewsResponse:
    """Successful API response with raw body and metadata."""

    status_code: int
    content: bytes
    headers: httpx.Headers
    url: str = ""

    @property
    def is_success(self) -> bool:
        """Check if response was successful (2xx status code)."""
        return 200 <= self.status_code < 300


class NewsHTTPClient:
    """Async HTTP client for the news REST API.

    Features:
    - Token authentication via query parameter
    - Typed transport and status errors
    - Request/response logging with redacted URLs
    """

    BASE_URL = "https://api.benzinga.com"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        auth: ApiAuth,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize news HTTP client.

        Args:
            auth: ApiAuth instance supplying the token.
            timeout: Request timeout in seconds.
            base_url: Base URL for the API.
            transport: Optional httpx transport, mainly for tests.
        """
        self._auth = auth
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._transport = transport

        self._client: httpx.AsyncClient | None = None
        self.requests_made = 0

    def _get_headers(self) -> dict[str, str]:
        """Get headers for API requests."""
        return {
            "Accept": "application/json",
            "User-Agent": f"news-archive/{__version__}",
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure async client is initialized.

        Returns:
            Active httpx.AsyncClient instance.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._get_headers(),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def get(self, path: str, params: dict[str, str] | None = None) -> NewsResponse:
        """Make an authenticated GET request.

        Args:
            path: API path (e.g., "/api/v2/news").
            params: Query parameters, without the token.

        Returns:
            NewsResponse for a 2xx response.

        Raises:
            TransportError: If the request could not be completed, including
                redirect loops.
            DecodeError: If the body does not match its Content-Encoding.
            UnexpectedResponseError: If the status code is not 2xx.
        """
        client = await self._ensure_client()
        query = dict(params or {})
        query.update(self._auth.query_params())

        request = client.build_request("GET", path, params=query)
        url = str(request.url)
        logger.debug("GET %s", url)

        try:
            response = await client.send(request)
        except httpx.DecodingError as e:
            raise DecodeError(f"error decoding response body: {e}", url=url) from e
        except httpx.RequestError as e:
            raise TransportError(f"error sending request: {e}", url=url) from e
        finally:
            self.requests_made += 1

        if not 200 <= response.status_code < 300:
            raise UnexpectedResponseError(response.status_code, response.text, url=url)

        return NewsResponse(
            status_code=response.status_code,
            content=response.content,
            headers=response.headers,
            url=url,
        )

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "NewsHTTPClient":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
