"""
Error types raised by the bot.

Every failure is one of these kinds. None of them is retried: the unit of
work that raised it (one panel loop, or the whole process at startup) ends.
"""

from __future__ import annotations


class CounterError(Exception):
    """Base class for all bot errors."""


class ConfigError(CounterError):
    """A required setting is missing or a setting is malformed."""


class StoreError(CounterError):
    """A database operation failed (connectivity, constraint, missing row)."""


class DecodeError(CounterError, ValueError):
    """A button identifier could not be decoded into a smoking type id."""


class PlatformClientError(CounterError):
    """The Discord client could not be built, logged in or started."""
