"""FastAPI application factory.

Creates the FastAPI app with lifespan management, the gateway error
handlers, and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from scrape_gateway import __version__
from scrape_gateway.core.config import get_settings
from scrape_gateway.core.database import dispose_engine, init_engine
from scrape_gateway.core.exceptions import GatewayError, InvalidArgument, RateLimited
from scrape_gateway.core.logging import setup_logging


def _format_validation_error(exc: RequestValidationError) -> str:
    """Collapse pydantic errors into one client-facing sentence."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Render a gateway error as ``{"success": false, "error": ...}``."""
    content: dict[str, object] = {"success": False, "error": exc.message}
    if isinstance(exc, RateLimited):
        content["retryAfter"] = exc.retry_after
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed targets and options as 400 InvalidArgument."""
    return await gateway_error_handler(request, InvalidArgument(_format_validation_error(exc)))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: init engine on startup, dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, secrets=settings.secret_values)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)
    if settings.upstream_api_key is None:
        logger.warning("UPSTREAM_API_KEY is not set; proxied operations will fail")

    yield

    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Scrape Gateway",
        description="Authenticated, rate-limited gateway for scrape, search, map and crawl operations",
        version=__version__,
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # Register middleware and routers
    from scrape_gateway.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
