"""
Configuration loading.

Settings come from an optional YAML file overlaid with environment
variables. The environment always wins.
"""

from __future__ import annotations
import os
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import ConfigError

DEFAULT_COMMAND_PREFIX = "c:"

# config key -> environment variable
ENV_KEYS = {
    "token": "BOT_TOKEN",
    "database_url": "DATABASE_URL",
    "command_prefix": "COMMAND_PREFIX",
    "timezone": "TIMEZONE",
    "panel_timeout": "PANEL_TIMEOUT",
    "auto_migrate": "AUTO_MIGRATE",
}

REQUIRED_KEYS = ("token", "database_url")

SQLITE_SCHEMES = ("sqlite+aiosqlite://", "sqlite://")


class Config(dict):
    @staticmethod
    def load(path: str) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
        return Config(data)

    @classmethod
    def from_env(cls, path: str | None = None, environ: Mapping[str, str] | None = None) -> "Config":
        """Build the config from an optional YAML file plus the environment.

        Raises ConfigError for the first missing required setting, checked
        in the order BOT_TOKEN, DATABASE_URL.
        """
        env = os.environ if environ is None else environ
        cfg = cls.load(path) if path and os.path.exists(path) else cls()

        for key, var in ENV_KEYS.items():
            value = env.get(var)
            if value is not None and value != "":
                cfg[key] = value

        for key in REQUIRED_KEYS:
            if not cfg.get(key):
                raise ConfigError(f"Missing {ENV_KEYS[key]} environment variable")

        cfg.setdefault("command_prefix", DEFAULT_COMMAND_PREFIX)
        cfg.validate()
        return cfg

    def get(self, *keys, default=None):
        cur: Any = self
        for k in keys:
            if isinstance(cur, dict) and k in cur:
                cur = cur[k]
            else:
                return default
        return cur

    def validate(self):
        # Resolve every derived value once so bad input fails at startup.
        _ = (self.tzinfo, self.panel_timeout, self.auto_migrate)
        database_path(self.database_url)

    @property
    def token(self) -> str:
        return str(self.get("token"))

    @property
    def database_url(self) -> str:
        return str(self.get("database_url"))

    @property
    def command_prefix(self) -> str:
        return str(self.get("command_prefix", default=DEFAULT_COMMAND_PREFIX))

    @property
    def tzinfo(self) -> ZoneInfo | None:
        """Zone used for calendar days. None means the server's local zone."""
        name = self.get("timezone")
        if not name:
            return None
        try:
            return ZoneInfo(str(name))
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"Unknown timezone {name!r}") from e

    @property
    def panel_timeout(self) -> float | None:
        raw = self.get("panel_timeout")
        if raw in (None, ""):
            return None
        try:
            seconds = float(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"PANEL_TIMEOUT must be a number of seconds, got {raw!r}") from e
        if seconds < 0:
            raise ConfigError("PANEL_TIMEOUT must not be negative")
        return seconds or None

    @property
    def auto_migrate(self) -> bool:
        raw = self.get("auto_migrate", default=True)
        if isinstance(raw, bool):
            return raw
        value = str(raw).strip().lower()
        if value in ("1", "true", "yes", "on"):
            return True
        if value in ("0", "false", "no", "off"):
            return False
        raise ConfigError(f"AUTO_MIGRATE must be a boolean, got {raw!r}")


def database_path(url: str) -> str:
    """Turn DATABASE_URL into a path aiosqlite can open.

    sqlite:///counter.db   -> counter.db
    sqlite:////var/db.db   -> /var/db.db
    sqlite://:memory:      -> :memory:
    counter.db             -> counter.db
    """
    url = url.strip()
    for scheme in SQLITE_SCHEMES:
        if url.startswith(scheme):
            rest = url[len(scheme):]
            if rest in (":memory:", "/:memory:"):
                return ":memory:"
            if not rest.startswith("/") or rest == "/":
                raise ConfigError(f"DATABASE_URL has no database path: {url!r}")
            return rest[1:]
    if "://" in url:
        scheme = url.split("://", 1)[0]
        raise ConfigError(f"Unsupported DATABASE_URL scheme {scheme!r}; only sqlite is supported")
    if not url:
        raise ConfigError("DATABASE_URL is empty")
    return url
