"""Unauthenticated service endpoints: GET /health, GET /info."""

from typing import Annotated

from fastapi import APIRouter, Depends

from scrape_gateway import __version__
from scrape_gateway.core.config import Settings, get_settings

system_router = APIRouter(tags=["system"])


@system_router.get("/health", status_code=200)
async def health_check() -> dict:
    """Health check endpoint (no authentication required)."""
    return {"status": "healthy"}


@system_router.get("/info", status_code=200)
async def info(
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Return application version and environment."""
    return {
        "version": __version__,
        "environment": settings.environment,
    }
