# levelgate/cli/db.py
from __future__ import annotations

import asyncio

import typer
from sqlalchemy import text

from levelgate.cli.utils import setup_cli_logging
from levelgate.core.config import settings
from levelgate.db.engine import get_engine
from levelgate.db.models import Base

db_app = typer.Typer(name="db", help="Database maintenance")


async def _create_tables() -> None:
    engine = get_engine()
    async with engine.begin() as conn:
        if settings.db_schema:
            await conn.execute(
                text(f'CREATE SCHEMA IF NOT EXISTS "{settings.db_schema}"')
            )
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


@db_app.command("init")
def init_db(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Create the levels and access_requests tables if missing."""
    setup_cli_logging(verbose)
    asyncio.run(_create_tables())
    typer.echo("Database schema ready.")
