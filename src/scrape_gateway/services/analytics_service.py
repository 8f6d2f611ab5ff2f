"""Admin analytics over the most recent usage ledger rows.

Read-only: nothing in this module writes to the ledger.
"""

from collections import Counter
from collections.abc import Sequence

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.exceptions import StorageUnavailable
from scrape_gateway.models.usage_log import UsageLog
from scrape_gateway.schemas.usage import UsageAnalyticsResponse, UsageLogResponse, UserUsageStats
from scrape_gateway.services.usage_ledger_service import list_recent_usage

DEFAULT_SAMPLE_SIZE = 100


def summarize_usage(logs: Sequence[UsageLog], sample_size: int = DEFAULT_SAMPLE_SIZE) -> UsageAnalyticsResponse:
    """Aggregate ledger rows into totals, a per-function histogram and per-user stats.

    Args:
        logs: Ledger rows, newest first.
        sample_size: The row limit used to fetch ``logs``.

    Returns:
        UsageAnalyticsResponse with the computed aggregates.
    """
    total = len(logs)
    successful = sum(1 for log in logs if log.success)
    by_function = Counter(log.function_name for log in logs)

    per_user: dict[str, UserUsageStats] = {}
    for log in logs:
        stats = per_user.get(log.user_id)
        if stats is None:
            stats = UserUsageStats(
                user_id=log.user_id,
                total_requests=0,
                successful_requests=0,
                failed_requests=0,
                last_request=log.created_at,
            )
            per_user[log.user_id] = stats
        stats.total_requests += 1
        if log.success:
            stats.successful_requests += 1
        else:
            stats.failed_requests += 1
        if log.created_at > stats.last_request:
            stats.last_request = log.created_at

    users = sorted(per_user.values(), key=lambda s: (-s.total_requests, s.user_id))

    return UsageAnalyticsResponse(
        sample_size=sample_size,
        total_requests=total,
        successful_requests=successful,
        failed_requests=total - successful,
        success_rate=round(successful / total * 100, 1) if total else 0.0,
        by_function=dict(by_function),
        unique_users=len(per_user),
        users=users,
        logs=[UsageLogResponse.model_validate(log) for log in logs],
    )


async def get_usage_analytics(session: AsyncSession, *, sample_size: int = DEFAULT_SAMPLE_SIZE) -> UsageAnalyticsResponse:
    """Load the most recent rows and aggregate them.

    Raises:
        StorageUnavailable: If the ledger cannot be read.  An unreachable
            store is never reported as an empty result.
    """
    try:
        logs = await list_recent_usage(session, limit=sample_size)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Usage analytics read failed: {e}")
        raise StorageUnavailable("Usage analytics unavailable") from e
    return summarize_usage(logs, sample_size=sample_size)
