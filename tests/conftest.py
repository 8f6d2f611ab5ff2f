"""Shared test fixtures for the async ledger database, fake upstream/identity clients and the HTTP app."""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from scrape_gateway.api.router import create_router
from scrape_gateway.core.config import Settings, get_settings
from scrape_gateway.core.dependencies import get_async_session, get_identity_client, get_scraper
from scrape_gateway.lib.identity import PlatformAuthError
from scrape_gateway.lib.scraper import BaseScraper, ScrapeOperation, UpstreamResponse
from scrape_gateway.main import register_exception_handlers
from scrape_gateway.models.base import Base

UPSTREAM_SECRET = "fc-test-secret-0123456789"

USER_TOKEN = "user-token"
ADMIN_TOKEN = "admin-token"
USER_ID = "11111111-1111-1111-1111-111111111111"
ADMIN_ID = "22222222-2222-2222-2222-222222222222"


class FakeScraper(BaseScraper):
    """In-memory provider that records every call it receives."""

    def __init__(
        self,
        response: UpstreamResponse | None = None,
        error: Exception | None = None,
        configured: bool = True,
    ) -> None:
        self.response = response or UpstreamResponse(status_code=200, body={"success": True, "data": {}})
        self.error = error
        self.configured = configured
        self.calls: list[tuple[ScrapeOperation, dict[str, Any]]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def execute(self, operation: ScrapeOperation, payload: dict[str, Any]) -> UpstreamResponse:
        self.calls.append((operation, payload))
        if self.error is not None:
            raise self.error
        return self.response


class FakeIdentity:
    """Token introspection stand-in mapping known tokens to user ids."""

    def __init__(self, tokens: dict[str, str]) -> None:
        self.tokens = tokens
        self.calls: list[str] = []

    async def get_user_id(self, token: str) -> str:
        self.calls.append(token)
        if token not in self.tokens:
            raise PlatformAuthError("Token rejected with HTTP 401")
        return self.tokens[token]


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        platform_url="https://platform.test",
        platform_anon_key="anon-key-for-tests",
        upstream_api_key=UPSTREAM_SECRET,
    )


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed async SQLite engine so each session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_scraper() -> FakeScraper:
    return FakeScraper()


@pytest.fixture
def fake_identity() -> FakeIdentity:
    return FakeIdentity({USER_TOKEN: USER_ID, ADMIN_TOKEN: ADMIN_ID})


@pytest.fixture
def app(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    fake_scraper: FakeScraper,
    fake_identity: FakeIdentity,
) -> FastAPI:
    """Create a FastAPI app with the gateway routers wired to test doubles."""
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(create_router(settings))

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_scraper] = lambda: fake_scraper
    app.dependency_overrides[get_identity_client] = lambda: fake_identity
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
