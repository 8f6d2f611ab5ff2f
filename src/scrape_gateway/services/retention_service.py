"""Retention sweep for the usage ledger.

Deletes rows older than the retention horizon in a single statement.
Running it again with nothing newly aged deletes nothing.
"""

from datetime import UTC, datetime, timedelta

from fastapi import status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.exceptions import StorageUnavailable
from scrape_gateway.models.usage_log import UsageFunction
from scrape_gateway.services.usage_ledger_service import delete_usage_before, record_usage

DEFAULT_RETENTION_DAYS = 30


async def purge_expired_usage_logs(
    session: AsyncSession,
    *,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    window_seconds: int = 60,
    now: datetime | None = None,
) -> int:
    """Delete every ledger row older than ``retention_days``.

    Args:
        session: The database session.
        retention_days: Retention horizon in days.
        window_seconds: Active rate-limit window; the horizon must exceed it
            so a sweep never removes rows the limiter still counts.
        now: Reference time, defaults to the current UTC time.

    Returns:
        Number of deleted rows.

    Raises:
        ValueError: If the horizon does not exceed the rate-limit window.
        StorageUnavailable: If the delete fails.
    """
    if timedelta(days=retention_days) <= timedelta(seconds=window_seconds):
        msg = "Retention horizon must be longer than the rate-limit window"
        raise ValueError(msg)

    cutoff = (now or datetime.now(UTC)) - timedelta(days=retention_days)
    try:
        deleted = await delete_usage_before(session, cutoff)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error deleting old usage logs: {e}")
        raise StorageUnavailable("Failed to delete expired usage logs") from e

    logger.info(f"Cleanup complete: deleted {deleted} logs older than {retention_days} days")
    return deleted


async def run_cleanup(
    session: AsyncSession,
    *,
    triggered_by: str,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    window_seconds: int = 60,
) -> int:
    """Sweep expired rows and append a ``cleanup`` row recording the run."""
    deleted = await purge_expired_usage_logs(
        session,
        retention_days=retention_days,
        window_seconds=window_seconds,
    )
    await record_usage(
        session,
        user_id=triggered_by,
        function_name=UsageFunction.CLEANUP.value,
        status_code=status.HTTP_200_OK,
        success=True,
    )
    return deleted
