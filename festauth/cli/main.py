"""`festauth` command group: API server and account maintenance."""

from __future__ import annotations

import click

from festauth.cli.commands.users import bootstrap_admin_cmd, hash_password_cmd, users_cmd


@click.group()
@click.version_option(package_name="festauth")
def cli() -> None:
    """festauth — sessions and accounts of the festival app.

    \b
    First run:
      festauth bootstrap-admin
      festauth serve --reload

    \b
    Accounts:
      festauth users list
      festauth users list --shadow
      festauth hash-password
    """


@cli.command("serve")
@click.option("--host", default=None, help="Bind host  [default: APP_HOST]")
@click.option("--port", type=int, default=None, help="Bind port  [default: APP_PORT]")
@click.option("--reload", is_flag=True, default=False, help="Restart on code changes (development)")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from festauth.core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "festauth.api.app:app",
        host=host or settings.app_host,
        port=port or settings.app_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


cli.add_command(bootstrap_admin_cmd)
cli.add_command(users_cmd)
cli.add_command(hash_password_cmd)


if __name__ == "__main__":
    cli()
