# cart_recovery/cli/commands.py
import asyncio
import json

import click

from cart_recovery.core.config import get_settings
from cart_recovery.core.logging_config import configure_logging
from cart_recovery.database import dispose_engine, init_db
from cart_recovery.scheduler import browse_scan_task, cart_scan_task


@click.group()
def cli():
    """Cart recovery maintenance commands"""
    configure_logging()


@cli.command("create-tables")
def create_tables():
    """Create all database tables directly using SQLAlchemy"""
    async def _create_tables():
        try:
            await init_db()
        finally:
            await dispose_engine()
        click.echo("All tables created successfully!")

    asyncio.run(_create_tables())


@cli.command("scan")
@click.argument("track", type=click.Choice(["carts", "browse"]))
def scan(track):
    """Run one abandonment sweep and print its counts"""
    settings = get_settings()
    task = cart_scan_task if track == "carts" else browse_scan_task

    async def _scan():
        try:
            return await task(settings)
        finally:
            await dispose_engine()

    result = asyncio.run(_scan())
    if result is None:
        raise click.ClickException(f"{track} scan failed; see the log")
    click.echo(json.dumps(result.as_dict()))


if __name__ == "__main__":
    cli()
