"""Discord channel implementation of the notification sink."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord

from tourbridge.core.sink import SinkResult

if TYPE_CHECKING:
    from discord.ext import commands

logger = logging.getLogger(__name__)

# discord.py lets connection failures from aiohttp and request timeouts through as-is.
SINK_ERRORS = (discord.DiscordException, OSError, asyncio.TimeoutError)


class DiscordChannelSink:
    """Posts and deletes tournament announcements in one text channel.

    Every discord.py or transport error is converted into a failed
    SinkResult; callers decide what a failure means.
    """

    def __init__(self, bot: commands.Bot, channel_id: int) -> None:
        self.bot = bot
        self.channel_id = channel_id

    async def _resolve_channel(self) -> discord.TextChannel:
        """Return the destination channel, from cache or via the API."""
        ch = self.bot.get_channel(self.channel_id)
        if ch is None:
            ch = await self.bot.fetch_channel(self.channel_id)
        if not isinstance(ch, discord.TextChannel):
            raise discord.ClientException(f"channel {self.channel_id} is not a text channel")
        return ch

    async def _send(self, text: str) -> SinkResult:
        try:
            channel = await self._resolve_channel()
            sent = await channel.send(text)
        except SINK_ERRORS as exc:
            return SinkResult.failure(f"{type(exc).__name__}: {exc}")
        return SinkResult.success(str(sent.id))

    async def announce_open(self, text: str) -> SinkResult:
        return await self._send(text)

    async def announce_result(self, text: str) -> SinkResult:
        return await self._send(text)

    async def retract(self, ref: str) -> SinkResult:
        """Delete a previously sent message. Already-deleted counts as done."""
        try:
            channel = await self._resolve_channel()
            message = await channel.fetch_message(int(ref))
            await message.delete()
        except discord.NotFound:
            logger.debug("discord_message_already_gone ref=%s", ref)
            return SinkResult.success(ref)
        except (*SINK_ERRORS, ValueError) as exc:
            return SinkResult.failure(f"{type(exc).__name__}: {exc}")
        return SinkResult.success(ref)
