"""Tests for path management."""

from pathlib import Path

import pytest

from relay.config.paths import (
    ENV_VAR,
    get_config_path,
    get_database_path,
    get_logs_path,
    get_relay_home,
)


@pytest.fixture(autouse=True)
def _clear_home_cache():
    yield
    get_relay_home.cache_clear()


class TestGetRelayHome:
    """Tests for get_relay_home()."""

    def test_default_is_home_dot_relay(self, monkeypatch):
        # Clear env var and cache
        monkeypatch.delenv(ENV_VAR, raising=False)
        get_relay_home.cache_clear()

        assert get_relay_home() == Path.home() / ".relay"

    def test_respects_env_var(self, monkeypatch, tmp_path):
        monkeypatch.setenv(ENV_VAR, str(tmp_path / "custom"))
        get_relay_home.cache_clear()

        assert get_relay_home() == (tmp_path / "custom").resolve()

    def test_expands_tilde_in_env_var(self, monkeypatch):
        monkeypatch.setenv(ENV_VAR, "~/my-relay")
        get_relay_home.cache_clear()

        assert get_relay_home() == Path.home() / "my-relay"


class TestDerivedPaths:
    def test_derived_paths(self, monkeypatch, tmp_path):
        monkeypatch.setenv(ENV_VAR, str(tmp_path))
        get_relay_home.cache_clear()
        tmp_path = tmp_path.resolve()

        assert get_config_path() == tmp_path / "config.toml"
        assert get_database_path() == tmp_path / "relay.db"
        assert get_logs_path() == tmp_path / "logs"
