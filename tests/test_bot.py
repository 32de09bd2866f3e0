import logging
from types import SimpleNamespace

import pytest
from discord.ext import commands

from tabacount import bot as bot_module
from tabacount.bot import CounterBot
from tabacount.core.configurations import Config
from tabacount.core.db import Database
from tabacount.core.errors import PlatformClientError, StoreError

ENV = {"BOT_TOKEN": "t", "DATABASE_URL": "sqlite://:memory:", "COMMAND_PREFIX": "c:"}


@pytest.fixture
async def counter_bot():
    cfg = Config.from_env(environ=ENV)
    bot = CounterBot(cfg, Database(":memory:"))
    try:
        yield bot
    finally:
        await bot.db.close()


async def test_setup_hook_migrates_and_loads_counter(counter_bot):
    await counter_bot.setup_hook()
    assert counter_bot.get_cog("Counter") is not None
    assert counter_bot.get_command("create_cigarette_ui") is not None
    assert len(await counter_bot.db.get_smoking_types()) == 2


async def test_setup_hook_skips_migration_when_disabled():
    cfg = Config.from_env(environ={**ENV, "AUTO_MIGRATE": "no"})
    bot = CounterBot(cfg, Database(":memory:"))
    try:
        await bot.setup_hook()
        with pytest.raises(StoreError):
            await bot.db.get_smoking_types()
    finally:
        await bot.db.close()


async def test_prefix_from_config(counter_bot):
    assert counter_bot.command_prefix == "c:"


async def test_command_error_is_logged(counter_bot, caplog):
    ctx = SimpleNamespace(command=SimpleNamespace(qualified_name="create_cigarette_ui"))
    original = StoreError("database is locked")
    with caplog.at_level(logging.ERROR, logger="tabacount.bot"):
        await counter_bot.on_command_error(ctx, commands.CommandInvokeError(original))
    assert "create_cigarette_ui" in caplog.text
    assert "database is locked" in caplog.text


async def test_main_exits_without_token(monkeypatch, tmp_path):
    monkeypatch.delenv("BOT_TOKEN", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setattr(bot_module, "CONFIG_PATH", str(tmp_path / "missing.yml"))
    monkeypatch.setattr(bot_module.discord.utils, "setup_logging", lambda: None)
    with pytest.raises(SystemExit) as exc:
        await bot_module.main()
    assert exc.value.code == 1


def test_run_exits_on_platform_client_error(monkeypatch, capsys):
    async def failing_main():
        try:
            raise RuntimeError("401 Unauthorized")
        except RuntimeError as e:
            raise PlatformClientError("Discord login failed") from e

    monkeypatch.setattr(bot_module, "main", failing_main)
    with pytest.raises(SystemExit) as exc:
        bot_module.run()
    assert exc.value.code == 1
    assert "Discord login failed" in capsys.readouterr().out
