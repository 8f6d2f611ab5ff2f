"""Abstract scraping-provider interface and shared result types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ScrapeOperation(StrEnum):
    """Operations relayed to the scraping provider."""

    SCRAPE = "scrape"
    SEARCH = "search"
    MAP = "map"
    CRAWL = "crawl"


@dataclass
class UpstreamResponse:
    """Status and decoded JSON body returned by the provider.

    ``body`` is ``None`` when the provider answered with something that is
    not a JSON object.
    """

    status_code: int
    body: dict[str, Any] | None = None
    raw_text: str = field(default="", repr=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def error_message(self) -> str:
        """Provider-supplied error text, or a generic status description."""
        if self.body is not None:
            error = self.body.get("error")
            if isinstance(error, str) and error.strip():
                return error.strip()
        return f"Request failed with status {self.status_code}"


class ScraperTransportError(Exception):
    """Raised when the provider could not be reached (DNS, TLS, connect, timeout).

    Distinguishes a call that never produced an HTTP response from a
    non-2xx response (which is returned as an :class:`UpstreamResponse`).

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description, free of credentials.
    """

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        self.message = message
        super().__init__(f"{provider_name}: {message}")


class BaseScraper(ABC):
    """Abstract scraping provider. All providers must implement this."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider."""

    @property
    def is_configured(self) -> bool:
        """Whether this provider has all required configuration (e.g., API keys)."""
        return True

    @abstractmethod
    async def execute(self, operation: ScrapeOperation, payload: dict[str, Any]) -> UpstreamResponse:
        """Send one operation to the provider.

        Args:
            operation: Which provider endpoint to call.
            payload: JSON-serializable request body.

        Returns:
            The provider's status code and JSON body, for 2xx and non-2xx alike.

        Raises:
            ScraperTransportError: If no HTTP response was received.
        """
