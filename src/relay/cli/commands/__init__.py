"""CLI command modules."""

from relay.cli.commands import database, schedule, serve

__all__ = [
    "database",
    "schedule",
    "serve",
]
