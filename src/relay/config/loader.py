"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from relay.config.models import RelayConfig
from relay.config.paths import get_config_path


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.relay/config.toml (or RELAY_HOME)
        Path("/etc/relay/config.toml"),  # System-wide
    ]


def _set_from_env(section: dict[str, Any], key: str, env_var: str, secret: bool) -> None:
    """Set a value from environment if not already set."""
    if section.get(key) is None:
        value = os.environ.get(env_var)
        if value:
            section[key] = SecretStr(value) if secret else value


def _resolve_env(config: dict[str, Any]) -> dict[str, Any]:
    """Resolve Slack app credentials from environment where not set in config."""
    slack = config.setdefault("slack", {})
    _set_from_env(slack, "client_id", "SLACK_CLIENT_ID", secret=False)
    _set_from_env(slack, "client_secret", "SLACK_CLIENT_SECRET", secret=True)
    if not slack:
        config.pop("slack")
    return config


def load_config(path: Path | None = None) -> RelayConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default
            locations and falls back to defaults when none exist.

    Returns:
        Validated RelayConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ValueError: If config file is invalid.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in _get_default_config_paths():
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)

    return RelayConfig.model_validate(_resolve_env(raw_config))
