"""Runtime access for one-shot CLI commands."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import typer

from relay.cli.console import error
from relay.config import RelayConfig, load_config
from relay.runtime import Runtime, create_runtime


def load_config_or_exit(config_path: Path | None) -> RelayConfig:
    try:
        return load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        error(f"Could not load config: {e}")
        raise typer.Exit(1) from None


@asynccontextmanager
async def open_runtime(config_path: Path | None) -> AsyncIterator[Runtime]:
    """Yield a connected runtime without starting the delivery watcher."""
    runtime = create_runtime(load_config_or_exit(config_path))
    await runtime.database.connect()
    try:
        await runtime.database.create_all()
        yield runtime
    finally:
        await runtime.database.disconnect()
