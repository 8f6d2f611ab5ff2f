"""Scrape gateway: authenticated, rate-limited proxy for a hosted scraping provider."""

__version__ = "0.1.0"
