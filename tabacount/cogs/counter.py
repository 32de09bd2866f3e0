from __future__ import annotations
import logging

import discord
from discord.ext import commands

from ..core.collector import PanelView, extract_type_id, make_token
from ..core.models import DailySmokingSummary
from ..core.utility import today

log = logging.getLogger(__name__)

PANEL_TITLE = "喫煙カウント"
REPLY_HEADER = "記録しました。\n本日の累計本数"
UNIT = "本"


def format_daily_summary(summary: list[DailySmokingSummary]) -> str:
    return "".join(
        f"\n{s.description}: {s.total_quantity}{UNIT}"
        for s in summary
        if s.total_quantity
    )


class Counter(commands.Cog):
    """Cigarette counting panel."""

    def __init__(self, bot: commands.Bot, store=None):
        self.bot = bot
        self.store = store if store is not None else bot.db
        self._panels: set[PanelView] = set()

    def _tz(self):
        return getattr(self.store, "tz", None)

    def _panel_timeout(self) -> float | None:
        cfg = getattr(self.bot, "cfg", None)
        return cfg.panel_timeout if cfg is not None else None

    async def cog_unload(self):
        for panel in list(self._panels):
            panel.stop()

    async def handle_press(self, interaction: discord.Interaction, token: str):
        """Record one cigarette for the presser and reply with today's totals."""
        type_id = extract_type_id(interaction.data["custom_id"], token)
        user = await self.store.get_or_create_user(str(interaction.user.id), interaction.user.name)

        await self.store.log_smoking(user.discord_id, type_id, 1)
        summary = await self.store.get_daily_summary(user.discord_id, today(self._tz()))

        await interaction.response.send_message(REPLY_HEADER + format_daily_summary(summary))

    @commands.command(name="create_cigarette_ui")
    async def create_cigarette_ui(self, ctx: commands.Context):
        """Post the counting panel and record presses until the panel closes."""
        token = make_token(ctx.message.id)
        smoking_types = await self.store.get_smoking_types()
        panel = PanelView(token, smoking_types, channel_id=ctx.channel.id, timeout=self._panel_timeout())

        self._panels.add(panel)
        try:
            await ctx.send(PANEL_TITLE, view=panel)
            async for interaction in panel:
                await self.handle_press(interaction, token)
        finally:
            panel.stop()
            self._panels.discard(panel)
        log.debug("Panel %s closed", token)


async def setup(bot: commands.Bot):
    await bot.add_cog(Counter(bot))
