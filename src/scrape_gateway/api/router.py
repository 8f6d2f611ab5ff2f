"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from scrape_gateway.api.middleware import SecurityHeadersMiddleware, setup_cors
from scrape_gateway.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from scrape_gateway.api.v1.scraper import scraper_router
    from scrape_gateway.api.v1.system import system_router
    from scrape_gateway.api.v1.usage_logs import usage_logs_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(system_router)
    root_router.include_router(scraper_router)
    root_router.include_router(usage_logs_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Rate limiting is not a middleware: it is enforced per user against the
    shared usage ledger inside each proxied operation.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
