from __future__ import annotations

import asyncio
import logging
import os
import sys
import traceback

import discord
from discord.ext import commands

from .core.configurations import Config, database_path
from .core.db import Database
from .core.errors import ConfigError, PlatformClientError

log = logging.getLogger(__name__)

COGS = [
    "tabacount.cogs.counter",
]

# Optional YAML file; environment variables override anything in it.
CONFIG_PATH = os.getenv("TABACOUNT_CONFIG", "config.yml")

SEPARATOR = "=" * 60


def _print_section(title: str = ""):
    """Print a section separator with optional title."""
    print(f"\n{SEPARATOR}")
    if title:
        print(title)
        print(SEPARATOR)


class CounterBot(commands.Bot):
    def __init__(self, cfg: Config, db: Database):
        intents = discord.Intents.default()
        intents.message_content = True

        super().__init__(
            command_prefix=cfg.command_prefix,
            intents=intents,
        )
        self.cfg = cfg
        self.db = db

    async def setup_hook(self):
        """Connect the database and load cogs. Any failure aborts startup."""
        _print_section("Initializing counter bot...")

        await self.db.connect()
        print("✓ Database connected")
        if self.cfg.auto_migrate:
            await self.db.migrate()
            print("✓ Database schema ready")

        for ext in COGS:
            await self.load_extension(ext)
            print(f"✓ Loaded: {ext}")

    async def on_ready(self):
        _print_section()
        print(f"Bot is ready! Logged in as {self.user} (ID: {self.user.id})")
        print(f"Connected to {len(self.guilds)} guild(s), prefix {self.cfg.command_prefix!r}")

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        """Log failed commands. Users get no custom message."""
        if isinstance(error, commands.CommandNotFound):
            return
        original = getattr(error, "original", error)
        log.error(
            "Command %s failed: %s",
            ctx.command.qualified_name if ctx.command else "?",
            original,
            exc_info=(type(original), original, original.__traceback__),
        )

    async def close(self):
        await super().close()
        await self.db.close()


async def main():
    discord.utils.setup_logging()

    try:
        cfg = Config.from_env(CONFIG_PATH)
    except ConfigError as e:
        _print_section(f"ERROR: {e}")
        print("Set BOT_TOKEN and DATABASE_URL (e.g. sqlite:///tabacount.db).")
        sys.exit(1)

    db = Database(database_path(cfg.database_url), tz=cfg.tzinfo)
    bot = CounterBot(cfg, db)

    try:
        async with bot:
            await bot.start(cfg.token)
    except discord.LoginFailure as e:
        raise PlatformClientError(f"Discord login failed: {e}. Please check BOT_TOKEN.") from e
    except (discord.HTTPException, discord.GatewayNotFound, discord.ConnectionClosed) as e:
        raise PlatformClientError(f"Discord client error: {e}") from e


def run():
    try:
        asyncio.run(main())
    except PlatformClientError as e:
        _print_section(f"ERROR: {e}")
        traceback.print_exception(e.__cause__)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nBot shutdown requested by user")


if __name__ == "__main__":
    run()
