"""Configuration models using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator

from relay.config.paths import get_database_path

DEFAULT_USER_SCOPES = [
    "chat:write",
    "channels:read",
    "groups:read",
    "im:read",
    "mpim:read",
]


class SlackConfig(BaseModel):
    """Slack app credentials and API settings."""

    client_id: str | None = None
    client_secret: SecretStr | None = None
    redirect_uri: str = "http://localhost:8080/api/auth/slack/callback"
    api_base_url: str = "https://slack.com/api"
    authorize_url: str = "https://slack.com/oauth/v2/authorize"
    # Network timeout for every Slack call, in seconds
    timeout: float = 10.0
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_USER_SCOPES))


class SchedulerConfig(BaseModel):
    """Configuration for the delivery polling loop.

    The loop wakes every ``poll_interval`` seconds, so a delivery is sent
    at most one interval after its scheduled time.
    """

    enabled: bool = True
    poll_interval: float = 60.0
    # 1 = deliveries within a tick are dispatched serially
    max_concurrency: int = 1
    # Emit a heartbeat log line every N polls
    heartbeat_every: int = 60

    @field_validator("poll_interval")
    @classmethod
    def _positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("poll_interval must be positive")
        return value

    @field_validator("max_concurrency", "heartbeat_every")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


class CredentialsConfig(BaseModel):
    """Token lifecycle settings."""

    # Refresh tokens this many seconds before they expire
    refresh_buffer_seconds: int = 300


class ServerConfig(BaseModel):
    """Configuration for HTTP server."""

    host: str = "127.0.0.1"
    port: int = 8080
    # Where OAuth callbacks redirect the browser after install
    frontend_url: str = "http://localhost:3000"


class DatabaseConfig(BaseModel):
    """Configuration for the SQLite store."""

    path: Path = Field(default_factory=get_database_path)
    url: str | None = None


class ConfigError(Exception):
    """Configuration error."""

    pass


class RelayConfig(BaseModel):
    """Root configuration model."""

    slack: SlackConfig = Field(default_factory=SlackConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
