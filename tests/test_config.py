"""
Unit tests for configuration loading.

Covers the environment overlay, defaults, required settings and the
DATABASE_URL to sqlite path conversion.
"""

import os
import tempfile

import pytest
import yaml

from tabacount.core.configurations import Config, database_path, DEFAULT_COMMAND_PREFIX
from tabacount.core.errors import ConfigError


BASE_ENV = {"BOT_TOKEN": "token-123", "DATABASE_URL": "sqlite:///counter.db"}


class TestFromEnv:
    def test_required_values_and_default_prefix(self):
        cfg = Config.from_env(environ=BASE_ENV)
        assert cfg.token == "token-123"
        assert cfg.database_url == "sqlite:///counter.db"
        assert cfg.command_prefix == DEFAULT_COMMAND_PREFIX == "c:"
        assert cfg.tzinfo is None
        assert cfg.panel_timeout is None
        assert cfg.auto_migrate is True

    def test_custom_prefix(self):
        cfg = Config.from_env(environ={**BASE_ENV, "COMMAND_PREFIX": "!"})
        assert cfg.command_prefix == "!"

    def test_missing_token_reported_first(self):
        with pytest.raises(ConfigError, match="BOT_TOKEN"):
            Config.from_env(environ={})

    def test_missing_database_url(self):
        with pytest.raises(ConfigError, match="DATABASE_URL"):
            Config.from_env(environ={"BOT_TOKEN": "t"})

    def test_empty_value_counts_as_missing(self):
        with pytest.raises(ConfigError, match="BOT_TOKEN"):
            Config.from_env(environ={**BASE_ENV, "BOT_TOKEN": ""})

    def test_timezone(self):
        cfg = Config.from_env(environ={**BASE_ENV, "TIMEZONE": "Asia/Tokyo"})
        assert str(cfg.tzinfo) == "Asia/Tokyo"

    def test_bad_timezone(self):
        with pytest.raises(ConfigError, match="timezone"):
            Config.from_env(environ={**BASE_ENV, "TIMEZONE": "Mars/Olympus"})

    def test_panel_timeout(self):
        assert Config.from_env(environ={**BASE_ENV, "PANEL_TIMEOUT": "300"}).panel_timeout == 300.0
        assert Config.from_env(environ={**BASE_ENV, "PANEL_TIMEOUT": "0"}).panel_timeout is None

    def test_bad_panel_timeout(self):
        with pytest.raises(ConfigError, match="PANEL_TIMEOUT"):
            Config.from_env(environ={**BASE_ENV, "PANEL_TIMEOUT": "soon"})

    def test_auto_migrate_off(self):
        assert Config.from_env(environ={**BASE_ENV, "AUTO_MIGRATE": "false"}).auto_migrate is False

    def test_unsupported_database_scheme(self):
        with pytest.raises(ConfigError, match="postgres"):
            Config.from_env(environ={**BASE_ENV, "DATABASE_URL": "postgres://localhost/db"})


class TestYamlFile:
    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, data: dict) -> str:
        path = os.path.join(self.temp_dir, "config.yml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    def test_file_supplies_values(self):
        path = self._write_config({"token": "file-token", "database_url": "file.db", "command_prefix": "?"})
        cfg = Config.from_env(path, environ={})
        assert cfg.token == "file-token"
        assert cfg.database_url == "file.db"
        assert cfg.command_prefix == "?"

    def test_environment_overrides_file(self):
        path = self._write_config({"token": "file-token", "database_url": "file.db"})
        cfg = Config.from_env(path, environ={"BOT_TOKEN": "env-token"})
        assert cfg.token == "env-token"
        assert cfg.database_url == "file.db"

    def test_missing_file_is_ignored(self):
        cfg = Config.from_env(os.path.join(self.temp_dir, "nope.yml"), environ=BASE_ENV)
        assert cfg.token == "token-123"

    def test_nested_get(self):
        cfg = Config({"a": {"b": 1}})
        assert cfg.get("a", "b") == 1
        assert cfg.get("a", "c", default=5) == 5


class TestDatabasePath:
    @pytest.mark.parametrize("url,expected", [
        ("sqlite:///counter.db", "counter.db"),
        ("sqlite:////var/lib/counter.db", "/var/lib/counter.db"),
        ("sqlite+aiosqlite:///counter.db", "counter.db"),
        ("sqlite://:memory:", ":memory:"),
        (":memory:", ":memory:"),
        ("data/counter.db", "data/counter.db"),
    ])
    def test_accepted_forms(self, url, expected):
        assert database_path(url) == expected

    def test_sqlite_url_without_path(self):
        with pytest.raises(ConfigError):
            database_path("sqlite:///")
