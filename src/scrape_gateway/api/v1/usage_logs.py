"""Usage ledger endpoints.

POST /cleanup, GET /admin/usage-analytics, GET /usage/me.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.config import Settings, get_settings
from scrape_gateway.core.dependencies import (
    get_async_session,
    get_cleanup_caller,
    get_current_user_id,
    get_rate_limit_policy,
    require_role,
)
from scrape_gateway.core.exceptions import StorageUnavailable
from scrape_gateway.models.role_grant import Role
from scrape_gateway.schemas.usage import (
    CleanupResponse,
    MyUsageResponse,
    RateLimitSnapshot,
    UsageAnalyticsResponse,
    UsageLogResponse,
)
from scrape_gateway.services.analytics_service import get_usage_analytics
from scrape_gateway.services.rate_limit_service import RateLimitPolicy, get_rate_limit_snapshot
from scrape_gateway.services.retention_service import run_cleanup
from scrape_gateway.services.usage_ledger_service import list_recent_usage

usage_logs_router = APIRouter(tags=["usage"])


@usage_logs_router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_usage_logs(
    triggered_by: Annotated[str, Depends(get_cleanup_caller)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CleanupResponse:
    """Delete usage logs older than the retention horizon (scheduler or admin)."""
    deleted = await run_cleanup(
        session,
        triggered_by=triggered_by,
        retention_days=settings.usage_log_retention_days,
        window_seconds=settings.rate_limit_window_seconds,
    )
    return CleanupResponse(
        message=f"Deleted {deleted} logs older than {settings.usage_log_retention_days} days",
        deleted_count=deleted,
    )


@usage_logs_router.get("/admin/usage-analytics", response_model=UsageAnalyticsResponse)
async def usage_analytics(
    _admin_id: Annotated[str, Depends(require_role(Role.ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UsageAnalyticsResponse:
    """Aggregate the most recent usage logs (admin only)."""
    return await get_usage_analytics(session, sample_size=settings.analytics_recent_limit)


@usage_logs_router.get("/usage/me", response_model=MyUsageResponse)
async def my_usage(
    user_id: Annotated[str, Depends(get_current_user_id)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    policy: Annotated[RateLimitPolicy, Depends(get_rate_limit_policy)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> MyUsageResponse:
    """Return the caller's own recent usage and remaining quota."""
    snapshot = await get_rate_limit_snapshot(session, user_id, policy)
    try:
        logs = await list_recent_usage(session, limit=limit, user_id=user_id)
    except SQLAlchemyError as e:
        await session.rollback()
        raise StorageUnavailable("Failed to load usage logs") from e
    return MyUsageResponse(
        rate_limit=RateLimitSnapshot(
            limit=snapshot.limit,
            remaining=snapshot.remaining,
            window_seconds=snapshot.window_seconds,
        ),
        logs=[UsageLogResponse.model_validate(log) for log in logs],
    )
