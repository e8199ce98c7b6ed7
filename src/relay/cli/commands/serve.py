"""Server command for running the relay service."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        host: Annotated[
            str | None,
            typer.Option(
                "--host",
                "-h",
                help="Host to bind to (defaults to [server] host)",
            ),
        ] = None,
        port: Annotated[
            int | None,
            typer.Option(
                "--port",
                "-p",
                help="Port to bind to (defaults to [server] port)",
            ),
        ] = None,
        no_scheduler: Annotated[
            bool,
            typer.Option(
                "--no-scheduler",
                help="Serve the API without dispatching scheduled messages",
            ),
        ] = False,
    ) -> None:
        """Start the relay API server and delivery scheduler."""
        try:
            asyncio.run(_run_server(config, host, port, no_scheduler))
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nServer stopped")


async def _run_server(
    config_path: Path | None = None,
    host: str | None = None,
    port: int | None = None,
    no_scheduler: bool = False,
) -> None:
    """Run the server asynchronously."""
    from relay.cli.context import load_config_or_exit
    from relay.logging import configure_logging
    from relay.runtime import create_runtime
    from relay.server.app import create_app
    from relay.server.runner import ServerRunner

    # Configure logging with Rich for colorful server output and file logging
    configure_logging(use_rich=True, log_to_file=True)

    logger.info("Loading configuration")
    relay_config = load_config_or_exit(config_path)
    if no_scheduler:
        relay_config.scheduler.enabled = False
    if not relay_config.slack.client_id:
        logger.warning("slack_app_not_configured")

    runtime = create_runtime(relay_config)
    app = create_app(runtime)

    runner = ServerRunner(
        app,
        host=host or relay_config.server.host,
        port=port or relay_config.server.port,
    )
    await runner.run()
