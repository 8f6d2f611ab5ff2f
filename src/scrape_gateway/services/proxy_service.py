"""Operation proxy: relays one scraping call to the provider and accounts for it.

Flow per call: rate limit check -> provider request -> exactly one ledger
row -> relay.  Failed upstream calls still consume quota so that retry
loops cannot sidestep the limiter.
"""

from dataclasses import dataclass
from typing import Any

from fastapi import status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.exceptions import UpstreamUnavailable
from scrape_gateway.core.logging import redact_secrets
from scrape_gateway.lib.scraper.base import BaseScraper, ScraperTransportError
from scrape_gateway.schemas.operations import OperationRequest
from scrape_gateway.services.rate_limit_service import RateLimitPolicy, RateLimitStatus, check_rate_limit
from scrape_gateway.services.usage_ledger_service import record_usage

_MAX_CLIENT_ERROR_LENGTH = 300

NOT_CONFIGURED_MESSAGE = "Scraping provider not configured"
UNAVAILABLE_MESSAGE = "Scraping provider unavailable"
NON_JSON_MESSAGE = "Scraping provider returned an invalid response"


@dataclass
class ProxyResult:
    """Successful upstream response ready to relay."""

    status_code: int
    body: dict[str, Any]
    rate_limit: RateLimitStatus


def sanitize_upstream_error(message: str) -> str:
    """Make a provider error message safe to show to a client."""
    cleaned = " ".join(redact_secrets(message).split())
    if len(cleaned) > _MAX_CLIENT_ERROR_LENGTH:
        cleaned = cleaned[: _MAX_CLIENT_ERROR_LENGTH - 3] + "..."
    return cleaned


async def proxy_operation(
    session: AsyncSession,
    *,
    scraper: BaseScraper,
    user_id: str,
    request: OperationRequest,
    policy: RateLimitPolicy,
) -> ProxyResult:
    """Run one scrape/search/map/crawl call on behalf of ``user_id``.

    The request has already been authenticated and validated.

    Args:
        session: The database session.
        scraper: The upstream provider client.
        user_id: The authenticated caller.
        request: Validated operation request.
        policy: Rate limit parameters.

    Returns:
        ProxyResult with the provider's 2xx status and JSON body.

    Raises:
        RateLimited: If the caller's window is full.
        UpstreamUnavailable: On transport failures, non-2xx or unusable
            provider responses, or a missing provider credential.
        StorageUnavailable: If the ledger row could not be written.
    """
    operation = request.operation
    target = request.target
    rate_limit = await check_rate_limit(
        session,
        user_id=user_id,
        function_name=operation.value,
        request_target=target,
        policy=policy,
    )
    headers = rate_limit.headers()

    if not scraper.is_configured:
        logger.error(f"{scraper.provider_name} API key not configured")
        await record_usage(
            session,
            user_id=user_id,
            function_name=operation.value,
            request_target=target,
            error_message=NOT_CONFIGURED_MESSAGE,
        )
        raise UpstreamUnavailable(NOT_CONFIGURED_MESSAGE, headers=headers)

    logger.info(f"{operation} requested by user {user_id}: {target}")

    try:
        response = await scraper.execute(operation, request.to_upstream_payload())
    except ScraperTransportError as e:
        logger.error(f"{scraper.provider_name} {operation} transport failure: {e.message}")
        await record_usage(
            session,
            user_id=user_id,
            function_name=operation.value,
            request_target=target,
            status_code=None,
            success=False,
            error_message=e.message,
        )
        raise UpstreamUnavailable(UNAVAILABLE_MESSAGE, headers=headers) from e

    if response.ok and response.body is not None:
        await record_usage(
            session,
            user_id=user_id,
            function_name=operation.value,
            request_target=target,
            status_code=response.status_code,
            success=True,
        )
        logger.info(f"{operation} for user {user_id} succeeded with HTTP {response.status_code}")
        return ProxyResult(status_code=response.status_code, body=response.body, rate_limit=rate_limit)

    if response.ok:
        error_message = NON_JSON_MESSAGE
        client_status = status.HTTP_502_BAD_GATEWAY
    else:
        error_message = response.error_message
        client_status = response.status_code

    logger.error(f"{scraper.provider_name} {operation} error HTTP {response.status_code}: {response.raw_text}")
    await record_usage(
        session,
        user_id=user_id,
        function_name=operation.value,
        request_target=target,
        status_code=response.status_code,
        success=False,
        error_message=error_message,
    )
    raise UpstreamUnavailable(sanitize_upstream_error(error_message), status_code=client_status, headers=headers)
