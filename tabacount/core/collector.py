"""
Button-press correlation.

Each open panel gets its own token. Button custom ids are the token
followed by the smoking type id, and a panel only accepts presses whose
custom id starts with its token, so several panels can be open in one
channel at the same time.
"""

from __future__ import annotations
import asyncio
import logging

import discord

from .errors import DecodeError
from .models import SmokingType

log = logging.getLogger(__name__)

TOKEN_PREFIX = "cig"
# Five action rows of five buttons.
MAX_BUTTONS = 25


def make_token(invocation_id: int | str) -> str:
    """Correlation token for one command invocation.

    Ends in a non-digit, so the type id that follows it is unambiguous and
    no token is a prefix of another token.
    """
    return f"{TOKEN_PREFIX}-{invocation_id}-"


def button_custom_id(token: str, type_id: int) -> str:
    return f"{token}{int(type_id)}"


def extract_type_id(custom_id: str, token: str) -> int:
    """Strip `token` from `custom_id` and decode the rest as a base-10 id."""
    if not custom_id.startswith(token):
        raise DecodeError(f"Button id {custom_id!r} does not belong to panel {token!r}")
    rest = custom_id[len(token):]
    # str.isdigit() alone would accept non-ASCII digits.
    if not rest or not rest.isascii() or not rest.isdigit():
        raise DecodeError(f"Failed to parse smoking type id from {custom_id!r}")
    return int(rest)


class PanelView(discord.ui.View):
    """One button per smoking type; presses are queued for the panel's owner.

    Iterate the view to receive presses in arrival order. A press that comes
    in while an earlier one is still being handled waits in the queue.
    Iteration ends after stop() or when no press arrives within `timeout`
    seconds (None waits until shutdown).
    """

    def __init__(self, token: str, smoking_types: list[SmokingType], *, channel_id: int,
                 timeout: float | None = None):
        super().__init__(timeout=timeout)
        self.token = token
        self.channel_id = channel_id
        self._presses: asyncio.Queue = asyncio.Queue()
        self._closed = False

        for st in smoking_types[:MAX_BUTTONS]:
            button = discord.ui.Button(
                style=discord.ButtonStyle.primary,
                label=st.label[:80],
                custom_id=button_custom_id(token, st.id),
            )
            button.callback = self._enqueue
            self.add_item(button)

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, interaction: discord.Interaction) -> bool:
        if interaction.type != discord.InteractionType.component:
            return False
        if interaction.channel_id != self.channel_id:
            return False
        custom_id = (interaction.data or {}).get("custom_id") or ""
        return custom_id.startswith(self.token)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return self.matches(interaction)

    async def _enqueue(self, interaction: discord.Interaction):
        if not self._closed:
            self._presses.put_nowait(interaction)

    def _close(self):
        if not self._closed:
            self._closed = True
            # Wakes a pending __anext__; presses already queued are still yielded.
            self._presses.put_nowait(None)

    def stop(self):
        super().stop()
        self._close()

    async def on_timeout(self):
        log.debug("Panel %s timed out after %ss", self.token, self.timeout)
        self._close()

    def __aiter__(self):
        return self

    async def __anext__(self) -> discord.Interaction:
        interaction = await self._presses.get()
        if interaction is None:
            self._presses.put_nowait(None)
            raise StopAsyncIteration
        return interaction
