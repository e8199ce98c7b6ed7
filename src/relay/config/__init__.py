"""Configuration module."""

from relay.config.loader import load_config
from relay.config.models import (
    ConfigError,
    CredentialsConfig,
    DatabaseConfig,
    RelayConfig,
    SchedulerConfig,
    ServerConfig,
    SlackConfig,
)
from relay.config.paths import (
    get_config_path,
    get_database_path,
    get_logs_path,
    get_relay_home,
)

__all__ = [
    "ConfigError",
    "CredentialsConfig",
    "DatabaseConfig",
    "RelayConfig",
    "SchedulerConfig",
    "ServerConfig",
    "SlackConfig",
    "get_config_path",
    "get_database_path",
    "get_logs_path",
    "get_relay_home",
    "load_config",
]
