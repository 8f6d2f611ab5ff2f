"""Role grant management CLI commands.

Role grants are created and removed only by operators; the gateway itself
never writes them.
"""

import asyncio

import typer

from scrape_gateway.models.role_grant import Role

roles_app = typer.Typer()


@roles_app.command("grant")
def grant(
    user_id: str = typer.Argument(..., help="Platform user id"),
    role: Role = typer.Argument(Role.ADMIN, help="Role to grant"),
    if_not_exists: bool = typer.Option(
        False,
        "--if-not-exists",
        help="Exit successfully if the grant already exists (idempotent mode)",
    ),
) -> None:
    """Grant a role to a user."""
    asyncio.run(_grant(user_id, role, if_not_exists=if_not_exists))


async def _grant(user_id: str, role: Role, *, if_not_exists: bool = False) -> None:
    """Async implementation of role granting."""
    from scrape_gateway.core.config import get_settings
    from scrape_gateway.core.database import dispose_engine, get_session_factory, init_engine
    from scrape_gateway.services.role_service import grant_role

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            await grant_role(session, user_id, role)
            typer.echo(f"Granted role '{role.value}' to user '{user_id}'")
    except ValueError as e:
        if if_not_exists:
            typer.echo(f"{e}, skipping (--if-not-exists)")
            return
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()


@roles_app.command("revoke")
def revoke(
    user_id: str = typer.Argument(..., help="Platform user id"),
    role: Role = typer.Argument(Role.ADMIN, help="Role to revoke"),
) -> None:
    """Revoke a role from a user."""
    asyncio.run(_revoke(user_id, role))


async def _revoke(user_id: str, role: Role) -> None:
    """Async implementation of role revocation."""
    from scrape_gateway.core.config import get_settings
    from scrape_gateway.core.database import dispose_engine, get_session_factory, init_engine
    from scrape_gateway.services.role_service import revoke_role

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            if not await revoke_role(session, user_id, role):
                typer.echo(f"User '{user_id}' does not have role '{role.value}'", err=True)
                raise typer.Exit(code=1)
            typer.echo(f"Revoked role '{role.value}' from user '{user_id}'")
    finally:
        await dispose_engine()


@roles_app.command("list")
def list_grants(
    user_id: str | None = typer.Option(None, "--user", help="Only show grants for this user"),
) -> None:
    """List role grants."""
    asyncio.run(_list_grants(user_id))


async def _list_grants(user_id: str | None) -> None:
    """Async implementation of role grant listing."""
    from scrape_gateway.core.config import get_settings
    from scrape_gateway.core.database import dispose_engine, get_session_factory, init_engine
    from scrape_gateway.services.role_service import list_role_grants

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            grants = await list_role_grants(session, user_id)
            typer.echo(f"{'User':<40} {'Role':<12} {'Granted':<20}")
            typer.echo("-" * 72)
            for g in grants:
                typer.echo(f"{g.user_id:<40} {g.role:<12} {g.created_at:%Y-%m-%d %H:%M:%S}")
            typer.echo(f"\nTotal: {len(grants)}")
    finally:
        await dispose_engine()
