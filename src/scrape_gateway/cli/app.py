"""Typer CLI root application with serve command."""

import typer

from scrape_gateway.core.config import get_settings
from scrape_gateway.core.logging import setup_logging

app = typer.Typer(name="scrape-gateway", help="Scrape gateway operations CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, secrets=settings.secret_values)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "scrape_gateway.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from scrape_gateway.cli.db_cmd import db_app
    from scrape_gateway.cli.roles_cmd import roles_app
    from scrape_gateway.cli.usage_cmd import usage_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(roles_app, name="roles", help="Role grant management commands")
    app.add_typer(usage_app, name="usage", help="Usage ledger maintenance commands")


_register_subcommands()
