"""Integration tests for POST /cleanup, GET /admin/usage-analytics and GET /usage/me."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from pydantic import SecretStr
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scrape_gateway.core.config import Settings
from scrape_gateway.models.role_grant import Role
from scrape_gateway.models.usage_log import UsageLog
from scrape_gateway.services.role_service import grant_role

USER_ID = "11111111-1111-1111-1111-111111111111"
ADMIN_ID = "22222222-2222-2222-2222-222222222222"
USER_AUTH = {"Authorization": "Bearer user-token"}
ADMIN_AUTH = {"Authorization": "Bearer admin-token"}


@pytest.fixture
async def admin_grant(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        await grant_role(session, ADMIN_ID, Role.ADMIN)


async def _seed(factory: async_sessionmaker[AsyncSession], *rows: tuple[str, str, bool, timedelta]) -> None:
    now = datetime.now(UTC)
    async with factory() as session:
        for user_id, function_name, success, age in rows:
            session.add(
                UsageLog(
                    user_id=user_id,
                    function_name=function_name,
                    request_target="https://example.com",
                    status_code=200 if success else 500,
                    success=success,
                    created_at=now - age,
                )
            )
        await session.commit()


async def _rows(factory: async_sessionmaker[AsyncSession]) -> list[UsageLog]:
    async with factory() as session:
        return list((await session.execute(select(UsageLog))).scalars().all())


class TestCleanupEndpoint:
    """Tests for POST /api/v1/cleanup."""

    async def test_scheduler_sweeps_expired_rows(self, client: AsyncClient, session_factory) -> None:
        await _seed(
            session_factory,
            (USER_ID, "scrape", True, timedelta(days=31)),
            (USER_ID, "scrape", True, timedelta(days=1)),
        )

        resp = await client.post("/api/v1/cleanup")

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Deleted 1 logs older than 30 days", "deletedCount": 1}
        rows = await _rows(session_factory)
        assert len(rows) == 2
        cleanup_row = next(r for r in rows if r.function_name == "cleanup")
        assert cleanup_row.user_id == "scheduler"
        assert cleanup_row.success is True

    async def test_second_sweep_deletes_nothing(self, client: AsyncClient, session_factory) -> None:
        await _seed(session_factory, (USER_ID, "map", True, timedelta(days=40)))

        first = await client.post("/api/v1/cleanup")
        second = await client.post("/api/v1/cleanup")

        assert first.json()["deletedCount"] == 1
        assert second.json()["deletedCount"] == 0

    async def test_admin_can_trigger(self, client: AsyncClient, session_factory, admin_grant) -> None:
        resp = await client.post("/api/v1/cleanup", headers=ADMIN_AUTH)

        assert resp.status_code == 200
        rows = await _rows(session_factory)
        assert [r.user_id for r in rows if r.function_name == "cleanup"] == [ADMIN_ID]

    async def test_non_admin_forbidden(self, client: AsyncClient, session_factory) -> None:
        await _seed(session_factory, (USER_ID, "scrape", True, timedelta(days=31)))

        resp = await client.post("/api/v1/cleanup", headers=USER_AUTH)

        assert resp.status_code == 403
        assert resp.json() == {"success": False, "error": "Admin access required"}
        assert len(await _rows(session_factory)) == 1

    async def test_invalid_header_is_not_treated_as_scheduler(self, client: AsyncClient, session_factory) -> None:
        await _seed(session_factory, (USER_ID, "scrape", True, timedelta(days=31)))

        resp = await client.post("/api/v1/cleanup", headers={"Authorization": "Bearer forged"})

        assert resp.status_code == 401
        assert len(await _rows(session_factory)) == 1

    async def test_scheduler_secret_enforced_when_configured(self, client: AsyncClient, settings: Settings) -> None:
        settings.cleanup_scheduler_secret = SecretStr("cron-secret")

        rejected = await client.post("/api/v1/cleanup")
        accepted = await client.post("/api/v1/cleanup", headers={"X-Scheduler-Secret": "cron-secret"})

        assert rejected.status_code == 401
        assert accepted.status_code == 200


class TestUsageAnalyticsEndpoint:
    """Tests for GET /api/v1/admin/usage-analytics."""

    async def test_admin_gets_aggregates(self, client: AsyncClient, session_factory, admin_grant) -> None:
        await _seed(
            session_factory,
            (USER_ID, "scrape", True, timedelta(minutes=1)),
            (USER_ID, "scrape", False, timedelta(minutes=2)),
            (USER_ID, "search", True, timedelta(minutes=3)),
            ("user-3", "crawl", True, timedelta(minutes=4)),
        )

        resp = await client.get("/api/v1/admin/usage-analytics", headers=ADMIN_AUTH)

        assert resp.status_code == 200
        data = resp.json()
        assert data["sampleSize"] == 100
        assert data["totalRequests"] == 4
        assert data["successfulRequests"] == 3
        assert data["failedRequests"] == 1
        assert data["successRate"] == 75.0
        assert data["byFunction"] == {"scrape": 2, "search": 1, "crawl": 1}
        assert data["uniqueUsers"] == 2
        assert data["users"][0]["userId"] == USER_ID
        assert data["users"][0]["totalRequests"] == 3
        assert len(data["logs"]) == 4

    async def test_analytics_does_not_write(self, client: AsyncClient, session_factory, admin_grant) -> None:
        await client.get("/api/v1/admin/usage-analytics", headers=ADMIN_AUTH)
        assert await _rows(session_factory) == []

    async def test_non_admin_forbidden(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/admin/usage-analytics", headers=USER_AUTH)
        assert resp.status_code == 403

    async def test_unauthenticated(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/admin/usage-analytics")
        assert resp.status_code == 401


class TestMyUsageEndpoint:
    """Tests for GET /api/v1/usage/me."""

    async def test_returns_only_callers_rows(self, client: AsyncClient, session_factory) -> None:
        await _seed(
            session_factory,
            (USER_ID, "scrape", True, timedelta(seconds=10)),
            (USER_ID, "search", True, timedelta(hours=2)),
            (ADMIN_ID, "crawl", True, timedelta(seconds=10)),
        )

        resp = await client.get("/api/v1/usage/me", headers=USER_AUTH)

        assert resp.status_code == 200
        data = resp.json()
        assert data["rateLimit"] == {"limit": 20, "remaining": 19, "windowSeconds": 60}
        assert [log["functionName"] for log in data["logs"]] == ["scrape", "search"]
        assert all(log["userId"] == USER_ID for log in data["logs"])

    async def test_limit_parameter(self, client: AsyncClient, session_factory) -> None:
        await _seed(session_factory, *[(USER_ID, "scrape", True, timedelta(minutes=i)) for i in range(5)])

        resp = await client.get("/api/v1/usage/me", params={"limit": 2}, headers=USER_AUTH)

        assert len(resp.json()["logs"]) == 2

    async def test_limit_out_of_range_is_400(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/usage/me", params={"limit": 0}, headers=USER_AUTH)
        assert resp.status_code == 400

    async def test_unauthenticated(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/usage/me")
        assert resp.status_code == 401

    async def test_ledger_read_failure_is_500(self, client: AsyncClient) -> None:
        with patch(
            "scrape_gateway.api.v1.usage_logs.list_recent_usage",
            new_callable=AsyncMock,
            side_effect=OperationalError("SELECT", {}, Exception("connection refused")),
        ):
            resp = await client.get("/api/v1/usage/me", headers=USER_AUTH)

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Failed to load usage logs"}

    async def test_admin_cleanup_does_not_consume_quota(self, client: AsyncClient, admin_grant) -> None:
        await client.post("/api/v1/cleanup", headers=ADMIN_AUTH)

        resp = await client.get("/api/v1/usage/me", headers=ADMIN_AUTH)

        assert resp.json()["rateLimit"]["remaining"] == 20
