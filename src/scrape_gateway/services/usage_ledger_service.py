"""Usage ledger service.

The ledger is the single source of truth for rate limiting, analytics and
retention.  Rows are inserted once and never updated; the only delete path
is the retention sweep.
"""

from datetime import UTC, datetime, timedelta

from loguru import logger
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.exceptions import StorageUnavailable
from scrape_gateway.core.logging import redact_secrets
from scrape_gateway.models.usage_log import RATE_LIMIT_EXCEEDED_MESSAGE, UsageFunction, UsageLog


async def record_usage(
    session: AsyncSession,
    *,
    user_id: str,
    function_name: str,
    request_target: str | None = None,
    status_code: int | None = None,
    success: bool = False,
    error_message: str | None = None,
) -> UsageLog:
    """Append one row to the usage ledger.

    ``created_at`` is left to the database.  A failed write is never
    swallowed: losing an audit row is worse than failing the request.

    Args:
        session: The database session.
        user_id: The authenticated caller.
        function_name: Gateway function that was invoked.
        request_target: URL or search query, if any.
        status_code: Upstream HTTP status, if upstream was reached.
        success: Whether upstream executed and returned 2xx.
        error_message: Failure reason; secrets are redacted before storage.

    Returns:
        The persisted UsageLog row.

    Raises:
        StorageUnavailable: If the row could not be written.
    """
    entry = UsageLog(
        user_id=user_id,
        function_name=function_name,
        request_target=request_target,
        status_code=status_code,
        success=success,
        error_message=redact_secrets(error_message) if error_message else None,
    )
    session.add(entry)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Failed to record {function_name} usage for user {user_id}: {e}")
        raise StorageUnavailable("Failed to record usage") from e
    return entry


async def count_recent_usage(
    session: AsyncSession,
    *,
    user_id: str,
    window_seconds: int,
    exempt_upstream_failures: bool = False,
    now: datetime | None = None,
) -> int:
    """Count a user's ledger rows inside the trailing window.

    Args:
        session: The database session.
        user_id: The user whose rows are counted.
        window_seconds: Length of the trailing window.
        exempt_upstream_failures: Skip rows recording an upstream outage
            (transport failure or 5xx).  Rate-limit rejections still count.
        now: Reference time, defaults to the current UTC time.

    Returns:
        Number of proxied-operation rows with ``created_at >= now - window_seconds``.
        Retention sweep rows are not counted.

    Raises:
        SQLAlchemyError: Propagated so the caller can choose how to degrade.
    """
    window_start = (now or datetime.now(UTC)) - timedelta(seconds=window_seconds)
    query = select(func.count(UsageLog.id)).where(
        UsageLog.user_id == user_id,
        UsageLog.created_at >= window_start,
        UsageLog.function_name != UsageFunction.CLEANUP.value,
    )
    if exempt_upstream_failures:
        query = query.where(
            or_(
                UsageLog.success.is_(True),
                UsageLog.status_code < 500,
                UsageLog.error_message == RATE_LIMIT_EXCEEDED_MESSAGE,
            )
        )
    result = await session.execute(query)
    return result.scalar_one()


async def list_recent_usage(
    session: AsyncSession,
    *,
    limit: int,
    user_id: str | None = None,
) -> list[UsageLog]:
    """Return the most recent ledger rows, newest first.

    Raises:
        SQLAlchemyError: Propagated to the caller.
    """
    query = select(UsageLog)
    if user_id is not None:
        query = query.where(UsageLog.user_id == user_id)
    query = query.order_by(UsageLog.created_at.desc(), UsageLog.id).limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())


async def delete_usage_before(session: AsyncSession, cutoff: datetime) -> int:
    """Bulk-delete rows created strictly before ``cutoff``.

    Returns:
        Number of deleted rows.

    Raises:
        SQLAlchemyError: Propagated to the caller.
    """
    stmt = (
        delete(UsageLog)
        .where(UsageLog.created_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount or 0
