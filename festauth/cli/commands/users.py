"""CLI commands for account administration (direct database access)."""

from __future__ import annotations

import asyncio

import click

from festauth.cli.output import console, users_table


async def _list_users(include_shadow: bool, shadow_only: bool):
    from festauth.core.database import close_engine, get_session_factory
    from festauth.services.credentials import UserRepository

    try:
        async with get_session_factory()() as session:
            return await UserRepository(session).list_users(
                include_shadow=include_shadow, shadow_only=shadow_only
            )
    finally:
        await close_engine()


async def _bootstrap_admin():
    from festauth.core.config import get_settings
    from festauth.core.database import close_engine, get_session_factory
    from festauth.services.credentials import UserRepository
    from festauth.services.users import bootstrap_admin

    try:
        async with get_session_factory()() as session:
            user = await bootstrap_admin(UserRepository(session), get_settings())
            await session.commit()
            return user
    finally:
        await close_engine()


@click.group("users")
def users_cmd() -> None:
    """Inspect and bootstrap user accounts."""


@users_cmd.command("list")
@click.option("--all", "include_shadow", is_flag=True, default=False, help="Include shadow users")
@click.option("--shadow", "shadow_only", is_flag=True, default=False, help="Only shadow users")
def users_list(include_shadow: bool, shadow_only: bool) -> None:
    """List active user accounts."""
    try:
        users = asyncio.run(_list_users(include_shadow, shadow_only))
    except OSError as e:
        console.print(f"[red]Cannot connect to the database:[/red] {e}")
        raise SystemExit(1)
    title = "Shadow users" if shadow_only else "Users"
    console.print(users_table(users, title=title))


@click.command("bootstrap-admin")
def bootstrap_admin_cmd() -> None:
    """Create the configured admin account if it does not exist yet."""
    user = asyncio.run(_bootstrap_admin())
    if user is None:
        console.print("[dim]Admin account already present, nothing to do.[/dim]")
    else:
        console.print(f"[green]Admin account created:[/green] {user.username}")
        console.print("[yellow]Change the default password immediately![/yellow]")


@click.command("hash-password")
@click.password_option(help="Password to hash")
def hash_password_cmd(password: str) -> None:
    """Print a bcrypt hash (e.g. for seeding a database by hand)."""
    from festauth.core.auth import hash_password

    click.echo(hash_password(password))
