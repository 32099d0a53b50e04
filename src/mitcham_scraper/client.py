"""
HTTP client for the Mitcham eProperty portal.

Fetches listing and detail pages as text. Requests are spaced by a
configurable interval and serialized so that only one fetch is in flight at
a time. Failures surface as FetchError; retry policy is left to the caller.
"""

import asyncio
import time

import httpx
import structlog

from src.mitcham_scraper.config import ScraperConfig

logger = structlog.get_logger(__name__)


class FetchError(Exception):
    """Error fetching a document from the portal."""

    def __init__(self, message: str, error_code: str, details: dict | None = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class MitchamClient:
    """
    Async HTTP client for the Mitcham eProperty portal.

    Use as an async context manager:

        async with MitchamClient(config) as client:
            html = await client.get_page(config.listing_url)
    """

    def __init__(self, config: ScraperConfig | None = None) -> None:
        """
        Initialize the client.

        Args:
            config: Scraper configuration. Defaults to values from the environment.
        """
        self._config = config or ScraperConfig.from_env()
        self._last_request_time: float = 0.0
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "MitchamClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout),
            headers={
                "User-Agent": self._config.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-AU,en;q=0.9",
            },
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _wait_for_rate_limit(self) -> None:
        """Sleep until the configured request interval has elapsed."""
        elapsed = time.monotonic() - self._last_request_time
        wait_time = self._config.request_interval - elapsed

        if wait_time > 0:
            logger.debug("Rate limiting, waiting", wait_seconds=round(wait_time, 2))
            await asyncio.sleep(wait_time)

    async def _request(self, method: str, url: str, **kwargs) -> str:
        """
        Make a single HTTP request and return the body text.

        Args:
            method: HTTP method (GET or POST)
            url: Absolute URL to request
            **kwargs: Additional arguments for httpx

        Returns:
            Response body as text

        Raises:
            FetchError: On transport failure or a non-2xx status
        """
        assert self._client is not None, "Client not initialized. Use async context manager."

        async with self._lock:
            await self._wait_for_rate_limit()
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                raise FetchError(
                    message=f"Request failed: {e}",
                    error_code="request_failed",
                    details={"url": url, "method": method, "error": str(e)},
                ) from e
            finally:
                self._last_request_time = time.monotonic()

        if not response.is_success:
            raise FetchError(
                message=f"HTTP {response.status_code} from portal",
                error_code="http_status",
                details={"url": url, "method": method, "status_code": response.status_code},
            )

        return response.text

    async def get_page(self, url: str) -> str:
        """
        Fetch a page by URL.

        Raises:
            FetchError: If the request fails
        """
        logger.debug("Fetching page", url=url)
        return await self._request("GET", url)

    async def post_form(
        self,
        url: str,
        headers: dict[str, str] | None,
        form_fields: dict[str, str],
    ) -> str:
        """
        Submit a form-url-encoded POST and return the response body.

        Args:
            url: Form action URL
            headers: Extra request headers
            form_fields: Form fields to encode in the body

        Returns:
            HTML content of the response

        Raises:
            FetchError: If the request fails
        """
        logger.debug("Posting form", url=url, fields=sorted(form_fields))
        return await self._request("POST", url, headers=headers, data=form_fields)
