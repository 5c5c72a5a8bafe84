"""userbase CLI — run the API server and prepare the database.

Usage:
    userbase serve                   # Run the API (uvicorn)
    userbase serve --port 9000       # Override USERBASE_PORT
    userbase init-db                 # Create the users table for the current policy
    userbase policy                  # Show the active user schema policy
"""

from __future__ import annotations

import asyncio
import json

import click

from userbase.config import settings


@click.group()
def cli():
    """userbase — identity-record service."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: USERBASE_HOST).")
@click.option("--port", default=None, type=int, help="Port (default: USERBASE_PORT).")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes (dev only).")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "userbase.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
def init_db():
    """Create the users table if it does not exist."""
    from userbase.db.engine import create_tables, engine

    async def _run():
        try:
            await create_tables()
        finally:
            await engine.dispose()

    asyncio.run(_run())
    click.secho("users table ready", fg="green")


@cli.command()
def policy():
    """Print the user schema policy this process would run with."""
    from userbase.users.policy import policy as active_policy

    click.echo(
        json.dumps(
            {
                "require_username": active_policy.require_username,
                "require_email": active_policy.require_email,
                "id_field": active_policy.id_field,
                "public_fields": list(active_policy.public_fields),
                "login_field": active_policy.login_field,
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    cli()
