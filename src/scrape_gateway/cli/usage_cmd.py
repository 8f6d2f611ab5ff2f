"""Usage ledger maintenance CLI commands."""

import asyncio

import typer

usage_app = typer.Typer()


@usage_app.command("cleanup")
def cleanup() -> None:
    """Delete usage logs older than the retention horizon (for cron hosts)."""
    asyncio.run(_cleanup())


async def _cleanup() -> None:
    """Async implementation of the scheduled retention sweep."""
    from scrape_gateway.core.config import get_settings
    from scrape_gateway.core.database import dispose_engine, get_session_factory, init_engine
    from scrape_gateway.core.exceptions import StorageUnavailable
    from scrape_gateway.services.retention_service import run_cleanup

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            deleted = await run_cleanup(
                session,
                triggered_by=settings.scheduler_identity,
                retention_days=settings.usage_log_retention_days,
                window_seconds=settings.rate_limit_window_seconds,
            )
            typer.echo(f"Deleted {deleted} logs older than {settings.usage_log_retention_days} days")
    except StorageUnavailable as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
