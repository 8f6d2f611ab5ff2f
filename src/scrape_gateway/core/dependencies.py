"""FastAPI dependency injection for database sessions, identity, roles and upstream clients.

Provides get_async_session, get_current_user_id, role-based access control
factories, and the caller resolution used by the cleanup endpoint.
"""

import hmac
from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

from fastapi import Depends, Header
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.config import Settings, get_settings
from scrape_gateway.core.database import get_session_factory
from scrape_gateway.core.exceptions import Forbidden, Unauthenticated
from scrape_gateway.lib.identity import PlatformAuthClient, PlatformAuthError
from scrape_gateway.lib.scraper import BaseScraper, FirecrawlScraper
from scrape_gateway.models.role_grant import Role
from scrape_gateway.services.rate_limit_service import RateLimitPolicy
from scrape_gateway.services.role_service import has_role

_BEARER_PREFIX = "Bearer "


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def get_identity_client(settings: Annotated[Settings, Depends(get_settings)]) -> PlatformAuthClient:
    """Build the platform token-introspection client."""
    return PlatformAuthClient(
        base_url=settings.platform_url,
        anon_key=settings.platform_anon_key.get_secret_value(),
        timeout=settings.platform_auth_timeout,
    )


def get_scraper(settings: Annotated[Settings, Depends(get_settings)]) -> BaseScraper:
    """Build the upstream scraping provider client with the server-held key."""
    api_key = settings.upstream_api_key.get_secret_value() if settings.upstream_api_key else None
    return FirecrawlScraper(
        api_key=api_key,
        base_url=settings.upstream_base_url,
        timeout=settings.upstream_timeout,
    )


def get_rate_limit_policy(settings: Annotated[Settings, Depends(get_settings)]) -> RateLimitPolicy:
    return RateLimitPolicy.from_settings(settings)


def parse_bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        Unauthenticated: If the header is missing, uses another scheme, or
            carries an empty token.
    """
    if authorization is None or not authorization.startswith(_BEARER_PREFIX):
        raise Unauthenticated("Authentication required")
    token = authorization[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthenticated("Authentication required")
    return token


async def resolve_user_id(authorization: str | None, identity: PlatformAuthClient) -> str:
    """Verify a raw ``Authorization`` header value and return the caller's id."""
    token = parse_bearer_token(authorization)
    try:
        return await identity.get_user_id(token)
    except PlatformAuthError as e:
        logger.info(f"Invalid authentication token: {e}")
        raise Unauthenticated("Invalid authentication") from e


async def get_current_user_id(
    identity: Annotated[PlatformAuthClient, Depends(get_identity_client)],
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Authenticate the caller via the platform backend.

    Returns:
        The caller's stable user identifier.

    Raises:
        Unauthenticated: For any missing, malformed or rejected credential.
    """
    return await resolve_user_id(authorization, identity)


def require_role(role: Role) -> Callable[..., Any]:
    """Factory that creates a dependency requiring a role grant.

    The grant is looked up on every call.

    Args:
        role: The role the caller must hold.

    Returns:
        A FastAPI dependency returning the caller's user id.
    """

    async def role_checker(
        user_id: Annotated[str, Depends(get_current_user_id)],
        session: Annotated[AsyncSession, Depends(get_async_session)],
    ) -> str:
        if not await has_role(session, user_id, role):
            logger.warning(f"User {user_id} lacks role {role.value}")
            raise Forbidden(f"{role.value.capitalize()} access required")
        return user_id

    return role_checker


async def get_cleanup_caller(
    settings: Annotated[Settings, Depends(get_settings)],
    identity: Annotated[PlatformAuthClient, Depends(get_identity_client)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    authorization: Annotated[str | None, Header()] = None,
    x_scheduler_secret: Annotated[str | None, Header()] = None,
) -> str:
    """Resolve who is triggering a retention sweep.

    No ``Authorization`` header means the trusted scheduler (which must also
    present ``X-Scheduler-Secret`` when one is configured).  Any header that
    is present is treated as an admin call and fully verified, including a
    fresh role lookup.

    Returns:
        The identity recorded on the cleanup ledger row.
    """
    if authorization is None:
        expected = settings.cleanup_scheduler_secret
        if expected is not None and not hmac.compare_digest(
            (x_scheduler_secret or "").encode(), expected.get_secret_value().encode()
        ):
            logger.warning("Rejected credential-less cleanup call without a valid scheduler secret")
            raise Unauthenticated("Scheduler credential required")
        logger.info("Scheduled cleanup triggered")
        return settings.scheduler_identity

    user_id = await resolve_user_id(authorization, identity)
    if not await has_role(session, user_id, Role.ADMIN):
        logger.warning(f"User is not admin: {user_id}")
        raise Forbidden("Admin access required")
    logger.info(f"Admin triggered cleanup: {user_id}")
    return user_id
