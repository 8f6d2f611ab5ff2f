"""Request schemas for the proxied scraping operations.

Each operation accepts a target plus an ``options`` object whose fields are
a fixed, enumerated set.  Unknown option fields are rejected rather than
forwarded, so clients cannot reach provider features the gateway does not
expose.  Field names follow the provider's camelCase wire format.
"""

from typing import Any, ClassVar, Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from scrape_gateway.lib.scraper.base import ScrapeOperation

DEFAULT_SEARCH_LIMIT = 10

SimpleFormat = Literal["markdown", "html", "rawHtml", "links", "screenshot", "branding", "summary"]


def normalize_target_url(value: str) -> str:
    """Validate a scrape/map/crawl target and default its scheme to https.

    Raises:
        ValueError: If the URL is empty, has no host, or uses a non-http(s) scheme.
    """
    url = value.strip()
    if not url:
        msg = "URL is required"
        raise ValueError(msg)
    if "://" not in url:
        url = f"https://{url}"
    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https"):
        msg = "URL must use http or https"
        raise ValueError(msg)
    if not parts.hostname:
        msg = "URL must include a host"
        raise ValueError(msg)
    return url


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class JsonFormat(_WireModel):
    """Structured extraction format, optionally guided by a JSON schema and prompt."""

    type: Literal["json"]
    json_schema: dict[str, Any] | None = Field(default=None, alias="schema")
    prompt: str | None = None


class ScrapeLocation(_WireModel):
    country: str | None = Field(default=None, min_length=2, max_length=2)
    languages: list[str] | None = None


class ScrapeOptions(_WireModel):
    formats: list[SimpleFormat | JsonFormat] | None = None
    only_main_content: bool | None = None
    wait_for: int | None = Field(default=None, ge=0, description="Milliseconds to wait before scraping")
    location: ScrapeLocation | None = None


class NestedScrapeOptions(_WireModel):
    formats: list[Literal["markdown", "html"]] | None = None


class SearchOptions(_WireModel):
    limit: int | None = Field(default=None, ge=1, le=100)
    lang: str | None = None
    country: str | None = None
    tbs: str | None = Field(default=None, description="Time range filter, e.g. qdr:d")
    scrape_options: NestedScrapeOptions | None = None


class MapOptions(_WireModel):
    search: str | None = None
    limit: int | None = Field(default=None, ge=1)
    include_subdomains: bool | None = None


class CrawlOptions(_WireModel):
    limit: int | None = Field(default=None, ge=1)
    max_depth: int | None = Field(default=None, ge=0)
    include_paths: list[str] | None = None
    exclude_paths: list[str] | None = None


class _UrlOperationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    operation: ClassVar[ScrapeOperation]

    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return normalize_target_url(v)

    @property
    def target(self) -> str:
        return self.url


class ScrapeRequest(_UrlOperationRequest):
    """Body of ``POST /scrape``."""

    operation: ClassVar[ScrapeOperation] = ScrapeOperation.SCRAPE

    options: ScrapeOptions | None = None

    def to_upstream_payload(self) -> dict[str, Any]:
        options = self.options.to_wire() if self.options else {}
        return {"url": self.url, **options}


class MapRequest(_UrlOperationRequest):
    """Body of ``POST /map``."""

    operation: ClassVar[ScrapeOperation] = ScrapeOperation.MAP

    options: MapOptions | None = None

    def to_upstream_payload(self) -> dict[str, Any]:
        options = self.options.to_wire() if self.options else {}
        return {"url": self.url, **options}


class CrawlRequest(_UrlOperationRequest):
    """Body of ``POST /crawl``."""

    operation: ClassVar[ScrapeOperation] = ScrapeOperation.CRAWL

    options: CrawlOptions | None = None

    def to_upstream_payload(self) -> dict[str, Any]:
        options = self.options.to_wire() if self.options else {}
        return {"url": self.url, **options}


class SearchRequest(BaseModel):
    """Body of ``POST /search``."""

    model_config = ConfigDict(extra="forbid")

    operation: ClassVar[ScrapeOperation] = ScrapeOperation.SEARCH

    query: str
    options: SearchOptions | None = None

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        query = v.strip()
        if not query:
            msg = "Query is required"
            raise ValueError(msg)
        return query

    @property
    def target(self) -> str:
        return self.query

    def to_upstream_payload(self) -> dict[str, Any]:
        options = self.options.to_wire() if self.options else {}
        options.setdefault("limit", DEFAULT_SEARCH_LIMIT)
        return {"query": self.query, **options}


OperationRequest = ScrapeRequest | SearchRequest | MapRequest | CrawlRequest
