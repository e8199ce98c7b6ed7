"""Main CLI application."""

import typer

from relay.cli.commands import database, schedule, serve

app = typer.Typer(
    name="relay",
    help="Relay - Slack OAuth and scheduled messages",
    no_args_is_help=True,
)

serve.register(app)
database.register(app)
schedule.register(app)


if __name__ == "__main__":
    app()
