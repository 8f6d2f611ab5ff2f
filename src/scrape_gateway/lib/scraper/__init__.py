"""Scraping provider clients."""

from scrape_gateway.lib.scraper.base import BaseScraper, ScrapeOperation, ScraperTransportError, UpstreamResponse
from scrape_gateway.lib.scraper.firecrawl import FirecrawlScraper

__all__ = [
    "BaseScraper",
    "FirecrawlScraper",
    "ScrapeOperation",
    "ScraperTransportError",
    "UpstreamResponse",
]
