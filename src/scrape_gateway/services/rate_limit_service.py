"""Per-user sliding-window rate limiting over the usage ledger.

There is no counter state: every check re-counts the user's ledger rows in
the trailing window.  Two concurrent calls near the boundary can both see
``max - 1`` and both proceed; the limit is a soft abuse guard, not a quota.
"""

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.config import Settings
from scrape_gateway.core.exceptions import RateLimited
from scrape_gateway.models.usage_log import RATE_LIMIT_EXCEEDED_MESSAGE
from scrape_gateway.services.usage_ledger_service import count_recent_usage, record_usage


@dataclass(frozen=True)
class RateLimitPolicy:
    """Window parameters shared by every gateway instance."""

    max_requests: int = 20
    window_seconds: int = 60
    exempt_upstream_failures: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitPolicy":
        return cls(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            exempt_upstream_failures=settings.rate_limit_exempt_upstream_failures,
        )


@dataclass(frozen=True)
class RateLimitStatus:
    """Quota left after the current call is accounted for."""

    limit: int
    remaining: int
    window_seconds: int

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
        }


async def current_usage_count(session: AsyncSession, user_id: str, policy: RateLimitPolicy) -> int:
    """Count the user's calls in the window, treating a failed read as zero.

    A ledger read failure allows the request through rather than blocking
    all traffic; the write that follows still has to succeed.  The read
    transaction is closed before returning so no connection is held while
    the upstream call runs.
    """
    try:
        count = await count_recent_usage(
            session,
            user_id=user_id,
            window_seconds=policy.window_seconds,
            exempt_upstream_failures=policy.exempt_upstream_failures,
        )
        await session.commit()
        return count
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning(f"Rate limit count failed for user {user_id}, allowing request: {e}")
        return 0


async def check_rate_limit(
    session: AsyncSession,
    *,
    user_id: str,
    function_name: str,
    request_target: str | None,
    policy: RateLimitPolicy,
) -> RateLimitStatus:
    """Admit or reject the next call for ``user_id``.

    Args:
        session: The database session.
        user_id: The authenticated caller.
        function_name: Gateway function about to run (recorded on rejection).
        request_target: URL or query about to be requested.
        policy: Window size and request cap.

    Returns:
        RateLimitStatus with the quota remaining once this call is logged.

    Raises:
        RateLimited: If the window is full.  A ledger row is written first.
        StorageUnavailable: If the rejection row could not be written.
    """
    count = await current_usage_count(session, user_id, policy)

    if count >= policy.max_requests:
        logger.warning(f"Rate limit exceeded for user {user_id}: {count}/{policy.max_requests}")
        await record_usage(
            session,
            user_id=user_id,
            function_name=function_name,
            request_target=request_target,
            status_code=None,
            success=False,
            error_message=RATE_LIMIT_EXCEEDED_MESSAGE,
        )
        raise RateLimited(
            retry_after=policy.window_seconds,
            headers={
                "Retry-After": str(policy.window_seconds),
                "X-RateLimit-Limit": str(policy.max_requests),
                "X-RateLimit-Remaining": "0",
            },
        )

    return RateLimitStatus(
        limit=policy.max_requests,
        remaining=max(0, policy.max_requests - count - 1),
        window_seconds=policy.window_seconds,
    )


async def get_rate_limit_snapshot(session: AsyncSession, user_id: str, policy: RateLimitPolicy) -> RateLimitStatus:
    """Report remaining quota without consuming any of it."""
    count = await current_usage_count(session, user_id, policy)
    return RateLimitStatus(
        limit=policy.max_requests,
        remaining=max(0, policy.max_requests - count),
        window_seconds=policy.window_seconds,
    )
