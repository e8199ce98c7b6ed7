"""Tests for configuration loading and models."""

from pathlib import Path

import pytest
from pydantic import SecretStr, ValidationError

from relay.config.loader import load_config
from relay.config.models import (
    RelayConfig,
    SchedulerConfig,
    SlackConfig,
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    """Keep the developer's environment and home config out of these tests."""
    from relay.config.paths import get_relay_home

    monkeypatch.delenv("SLACK_CLIENT_ID", raising=False)
    monkeypatch.delenv("SLACK_CLIENT_SECRET", raising=False)
    monkeypatch.setenv("RELAY_HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    get_relay_home.cache_clear()
    yield
    get_relay_home.cache_clear()


class TestModels:
    def test_defaults(self):
        config = RelayConfig()
        assert config.scheduler.enabled is True
        assert config.scheduler.poll_interval == 60.0
        assert config.scheduler.max_concurrency == 1
        assert config.credentials.refresh_buffer_seconds == 300
        assert config.server.port == 8080
        assert config.slack.timeout == 10.0
        assert "chat:write" in config.slack.scopes

    def test_database_defaults_under_relay_home(self, tmp_path):
        config = RelayConfig()
        assert config.database.path == (tmp_path / "home").resolve() / "relay.db"

    @pytest.mark.parametrize(
        "kwargs",
        [{"poll_interval": 0}, {"max_concurrency": 0}, {"heartbeat_every": 0}],
    )
    def test_scheduler_rejects_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            SchedulerConfig(**kwargs)

    def test_client_secret_is_secret(self):
        config = SlackConfig(client_id="1.2", client_secret=SecretStr("shh"))
        assert "shh" not in repr(config)


class TestLoadConfig:
    def test_no_file_uses_defaults(self):
        config = load_config()
        assert config == RelayConfig()

    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_loads_toml(self, tmp_path):
        path = tmp_path / "relay.toml"
        path.write_text(
            """
[slack]
client_id = "123.456"
client_secret = "from-file"

[scheduler]
poll_interval = 15
max_concurrency = 4

[server]
frontend_url = "https://app.example.com"

[database]
path = "/tmp/relay-test.db"
"""
        )

        config = load_config(path)

        assert config.slack.client_id == "123.456"
        assert config.slack.client_secret.get_secret_value() == "from-file"
        assert config.scheduler.poll_interval == 15
        assert config.scheduler.max_concurrency == 4
        assert config.server.frontend_url == "https://app.example.com"
        assert config.database.path == Path("/tmp/relay-test.db")

    def test_finds_config_in_cwd(self, tmp_path):
        (tmp_path / "config.toml").write_text("[server]\nport = 9000\n")
        assert load_config().server.port == 9000

    def test_finds_config_in_relay_home(self, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        (home / "config.toml").write_text("[server]\nport = 9100\n")
        assert load_config().server.port == 9100

    def test_env_fills_missing_slack_credentials(self, monkeypatch):
        monkeypatch.setenv("SLACK_CLIENT_ID", "env-id")
        monkeypatch.setenv("SLACK_CLIENT_SECRET", "env-secret")

        config = load_config()

        assert config.slack.client_id == "env-id"
        assert config.slack.client_secret.get_secret_value() == "env-secret"

    def test_file_wins_over_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SLACK_CLIENT_ID", "env-id")
        path = tmp_path / "relay.toml"
        path.write_text('[slack]\nclient_id = "file-id"\n')

        assert load_config(path).slack.client_id == "file-id"

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "relay.toml"
        path.write_text("[scheduler]\npoll_interval = -1\n")

        with pytest.raises(ValidationError):
            load_config(path)
