"""Database management commands."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from relay.cli.console import console, dim, error, success
from relay.cli.context import open_runtime
from relay.errors import StorageError


def register(app: typer.Typer) -> None:
    """Register the db command group."""
    db_app = typer.Typer(help="Database management commands")

    @db_app.command("init")
    def db_init(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Create the credential and delivery tables if missing."""

        async def run() -> str:
            async with open_runtime(config) as runtime:
                return runtime.database.url

        console.print("[bold]Initializing database...[/bold]")
        try:
            url = asyncio.run(run())
        except StorageError as e:
            error(f"Database initialization failed: {e}")
            raise typer.Exit(1) from None
        success("Database ready")
        dim(url)

    app.add_typer(db_app, name="db")
