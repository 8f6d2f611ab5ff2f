"""Firecrawl scraping provider.

Calls the hosted Firecrawl API (https://docs.firecrawl.dev/) with a
server-held API key.  The key travels only in the ``Authorization`` header
and is never echoed into errors or logs.
"""

from typing import Any

import httpx
from loguru import logger

from scrape_gateway.lib.scraper.base import BaseScraper, ScrapeOperation, ScraperTransportError, UpstreamResponse

FIRECRAWL_API_URL = "https://api.firecrawl.dev/v1"
DEFAULT_TIMEOUT = 60.0


class FirecrawlScraper(BaseScraper):
    """Firecrawl provider relaying scrape, search, map and crawl calls."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = FIRECRAWL_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return "firecrawl"

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def endpoint_url(self, operation: ScrapeOperation) -> str:
        return f"{self._base_url}/{operation.value}"

    async def execute(self, operation: ScrapeOperation, payload: dict[str, Any]) -> UpstreamResponse:
        """POST an operation payload to Firecrawl.

        Args:
            operation: Which Firecrawl endpoint to call.
            payload: JSON request body.

        Returns:
            UpstreamResponse carrying the provider's status and decoded body.

        Raises:
            ScraperTransportError: On timeout, DNS, TLS, connection, redirect or
                body decoding failures.
        """
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        url = self.endpoint_url(operation)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"Firecrawl {operation} request timed out")
            raise ScraperTransportError("firecrawl", "Upstream request timed out") from e
        except httpx.ConnectError as e:
            logger.warning(f"Firecrawl {operation} connection error")
            raise ScraperTransportError("firecrawl", "Connection to scraping provider failed") from e
        except httpx.TransportError as e:
            logger.warning(f"Firecrawl {operation} transport error: {type(e).__name__}")
            raise ScraperTransportError("firecrawl", f"Transport error: {type(e).__name__}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Firecrawl {operation} request error: {type(e).__name__}")
            raise ScraperTransportError("firecrawl", f"Request error: {type(e).__name__}") from e

        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> UpstreamResponse:
        """Decode a provider response without trusting it to be JSON."""
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Firecrawl returned a non-JSON body with status {response.status_code}")
            return UpstreamResponse(status_code=response.status_code, body=None, raw_text=response.text)

        if not isinstance(data, dict):
            return UpstreamResponse(status_code=response.status_code, body=None, raw_text=response.text)
        return UpstreamResponse(status_code=response.status_code, body=data, raw_text=response.text)
