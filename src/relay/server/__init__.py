"""HTTP server for OAuth and message scheduling."""

from relay.server.app import create_app
from relay.server.runner import ServerRunner

__all__ = ["ServerRunner", "create_app"]
