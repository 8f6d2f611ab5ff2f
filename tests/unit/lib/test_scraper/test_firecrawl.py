"""Unit tests for the Firecrawl scraping provider."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from scrape_gateway.lib.scraper.base import ScrapeOperation, ScraperTransportError, UpstreamResponse
from scrape_gateway.lib.scraper.firecrawl import FirecrawlScraper

API_KEY = "fc-unit-test-key"


def _response(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", "https://api.firecrawl.dev/v1/scrape"), **kwargs)


class TestFirecrawlConfiguration:
    """Tests for provider identity and configuration."""

    def test_provider_name(self) -> None:
        assert FirecrawlScraper(api_key=API_KEY).provider_name == "firecrawl"

    def test_configured_with_key(self) -> None:
        assert FirecrawlScraper(api_key=API_KEY).is_configured is True

    @pytest.mark.parametrize("api_key", [None, ""])
    def test_not_configured_without_key(self, api_key: str | None) -> None:
        assert FirecrawlScraper(api_key=api_key).is_configured is False

    @pytest.mark.parametrize("operation", list(ScrapeOperation))
    def test_endpoint_url_per_operation(self, operation: ScrapeOperation) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY, base_url="https://fc.example/v1/")
        assert scraper.endpoint_url(operation) == f"https://fc.example/v1/{operation.value}"


class TestFirecrawlExecute:
    """Tests for FirecrawlScraper.execute."""

    async def test_success_returns_status_and_body(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY)
        body = {"success": True, "data": {"markdown": "# Hello"}}
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, json=body)
            result = await scraper.execute(ScrapeOperation.SCRAPE, {"url": "https://example.com"})

        assert result.status_code == 200
        assert result.ok is True
        assert result.body == body

    async def test_sends_bearer_key_and_payload(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY, base_url="https://fc.example/v1")
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, json={"success": True})
            await scraper.execute(ScrapeOperation.SEARCH, {"query": "python", "limit": 10})

        args, kwargs = mock_post.call_args
        assert args[0] == "https://fc.example/v1/search"
        assert kwargs["json"] == {"query": "python", "limit": 10}
        assert kwargs["headers"]["Authorization"] == f"Bearer {API_KEY}"

    async def test_non_2xx_is_returned_not_raised(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY)
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(402, json={"success": False, "error": "Payment required"})
            result = await scraper.execute(ScrapeOperation.CRAWL, {"url": "https://example.com"})

        assert result.ok is False
        assert result.status_code == 402
        assert result.error_message == "Payment required"

    async def test_non_json_body_has_no_body(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY)
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(502, text="<html>Bad Gateway</html>")
            result = await scraper.execute(ScrapeOperation.MAP, {"url": "https://example.com"})

        assert result.body is None
        assert result.raw_text == "<html>Bad Gateway</html>"
        assert result.error_message == "Request failed with status 502"

    async def test_json_array_body_is_not_an_object(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY)
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, json=["unexpected"])
            result = await scraper.execute(ScrapeOperation.SCRAPE, {"url": "https://example.com"})

        assert result.ok is True
        assert result.body is None

    async def test_timeout_raises_transport_error(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY, timeout=0.1)
        with (
            patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post,
            pytest.raises(ScraperTransportError, match="timed out"),
        ):
            mock_post.side_effect = httpx.TimeoutException("Read timed out")
            await scraper.execute(ScrapeOperation.SCRAPE, {"url": "https://example.com"})

    async def test_connect_error_raises_transport_error(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY)
        with (
            patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post,
            pytest.raises(ScraperTransportError) as exc_info,
        ):
            mock_post.side_effect = httpx.ConnectError("Name or service not known")
            await scraper.execute(ScrapeOperation.SCRAPE, {"url": "https://example.com"})

        assert exc_info.value.provider_name == "firecrawl"
        assert exc_info.value.message == "Connection to scraping provider failed"

    async def test_transport_error_message_never_contains_key(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY)
        with (
            patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post,
            pytest.raises(ScraperTransportError) as exc_info,
        ):
            mock_post.side_effect = httpx.RemoteProtocolError(f"peer closed, header Bearer {API_KEY}")
            await scraper.execute(ScrapeOperation.SCRAPE, {"url": "https://example.com"})

        assert exc_info.value.message == "Transport error: RemoteProtocolError"
        assert API_KEY not in str(exc_info.value)

    async def test_decoding_error_raises_transport_error(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY)
        with (
            patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post,
            pytest.raises(ScraperTransportError) as exc_info,
        ):
            mock_post.side_effect = httpx.DecodingError("bad gzip")
            await scraper.execute(ScrapeOperation.SCRAPE, {"url": "https://example.com"})

        assert exc_info.value.message == "Request error: DecodingError"

    async def test_too_many_redirects_raises_transport_error(self) -> None:
        scraper = FirecrawlScraper(api_key=API_KEY)
        with (
            patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post,
            pytest.raises(ScraperTransportError),
        ):
            mock_post.side_effect = httpx.TooManyRedirects("Exceeded maximum allowed redirects")
            await scraper.execute(ScrapeOperation.SCRAPE, {"url": "https://example.com"})


class TestUpstreamResponse:
    """Tests for UpstreamResponse helpers."""

    @pytest.mark.parametrize(("status_code", "ok"), [(200, True), (201, True), (299, True), (301, False), (500, False)])
    def test_ok_range(self, status_code: int, ok: bool) -> None:
        assert UpstreamResponse(status_code=status_code).ok is ok

    def test_blank_error_falls_back_to_status(self) -> None:
        response = UpstreamResponse(status_code=400, body={"error": "   "})
        assert response.error_message == "Request failed with status 400"
