"""Proxied scraping endpoints.

POST /scrape, POST /search, POST /map, POST /crawl.

Each endpoint authenticates the caller, validates the target and options,
enforces the per-user rate limit, relays the call to the provider and
records exactly one ledger row.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.dependencies import (
    get_async_session,
    get_current_user_id,
    get_rate_limit_policy,
    get_scraper,
)
from scrape_gateway.lib.scraper import BaseScraper
from scrape_gateway.schemas.common import ErrorResponse
from scrape_gateway.schemas.operations import CrawlRequest, MapRequest, OperationRequest, ScrapeRequest, SearchRequest
from scrape_gateway.services.proxy_service import proxy_operation
from scrape_gateway.services.rate_limit_service import RateLimitPolicy

scraper_router = APIRouter(tags=["scraper"])

_ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorResponse, "description": "Missing or malformed target or options"},
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer credential"},
    429: {"model": ErrorResponse, "description": "Per-user rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Provider or ledger unavailable"},
}

UserId = Annotated[str, Depends(get_current_user_id)]
Session = Annotated[AsyncSession, Depends(get_async_session)]
Scraper = Annotated[BaseScraper, Depends(get_scraper)]
Policy = Annotated[RateLimitPolicy, Depends(get_rate_limit_policy)]


async def _relay(
    session: AsyncSession,
    scraper: BaseScraper,
    user_id: str,
    request: OperationRequest,
    policy: RateLimitPolicy,
) -> JSONResponse:
    result = await proxy_operation(session, scraper=scraper, user_id=user_id, request=request, policy=policy)
    return JSONResponse(
        content=result.body,
        status_code=result.status_code,
        headers=result.rate_limit.headers(),
    )


@scraper_router.post("/scrape", responses=_ERROR_RESPONSES)
async def scrape(
    request: ScrapeRequest,
    user_id: UserId,
    session: Session,
    scraper: Scraper,
    policy: Policy,
) -> JSONResponse:
    """Scrape a single URL into the requested formats."""
    return await _relay(session, scraper, user_id, request, policy)


@scraper_router.post("/search", responses=_ERROR_RESPONSES)
async def search(
    request: SearchRequest,
    user_id: UserId,
    session: Session,
    scraper: Scraper,
    policy: Policy,
) -> JSONResponse:
    """Run a web search, optionally scraping each result."""
    return await _relay(session, scraper, user_id, request, policy)


@scraper_router.post("/map", responses=_ERROR_RESPONSES)
async def map_site(
    request: MapRequest,
    user_id: UserId,
    session: Session,
    scraper: Scraper,
    policy: Policy,
) -> JSONResponse:
    """List the URLs of a site."""
    return await _relay(session, scraper, user_id, request, policy)


@scraper_router.post("/crawl", responses=_ERROR_RESPONSES)
async def crawl(
    request: CrawlRequest,
    user_id: UserId,
    session: Session,
    scraper: Scraper,
    policy: Policy,
) -> JSONResponse:
    """Start a crawl of a site."""
    return await _relay(session, scraper, user_id, request, policy)
