"""Discord bot for tourbridge.

Runs alongside FastAPI using the same event loop. Owns the Discord
connection and the ``/tournaments`` slash command; announcements are posted
through ``DiscordChannelSink``.

The bot is optional: if DISCORD_BOT_TOKEN is not set, nothing starts and
announcements go to the log instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord
from discord import Intents
from discord.ext import commands

from tourbridge.core.messages import format_active_list

if TYPE_CHECKING:
    from tourbridge.config import Settings
    from tourbridge.core.state import TournamentRegistry

logger = logging.getLogger(__name__)


class TourBridgeBot(commands.Bot):
    """Mirrors Showdown tournaments into a Discord channel.

    The registry is read-only from the bot's side: the slash command lists
    what the reconciler is tracking.
    """

    def __init__(self, settings: Settings, registry: TournamentRegistry) -> None:
        super().__init__(
            command_prefix="!",
            intents=Intents.default(),
            description="Pokemon Showdown tournament announcements.",
        )
        self.settings = settings
        self.registry = registry
        self.main_channel_id: int = settings.channel_id
        self.connected = asyncio.Event()
        self.runner_task: asyncio.Task[None] | None = None
        self._setup_commands()

    def _setup_commands(self) -> None:
        """Register slash commands on the bot's command tree."""

        @self.tree.command(
            name="tournaments",
            description="Show currently ongoing Pokémon Showdown tournaments",
        )
        async def tournaments_command(interaction: discord.Interaction) -> None:
            await self._handle_tournaments(interaction)

    async def setup_hook(self) -> None:
        """Called when the bot is ready to start. Syncs slash commands."""
        if self.settings.discord_guild_id:
            guild = discord.Object(id=int(self.settings.discord_guild_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info("discord_commands_synced guild_id=%s", self.settings.discord_guild_id)
        else:
            await self.tree.sync()
            logger.info("discord_commands_synced globally")

    async def on_ready(self) -> None:
        """Fires on every reconnect, not just the first connection."""
        user = self.user
        name = user.name if user else "unknown"
        logger.info("discord_bot_ready user=%s", name)
        self.connected.set()

    # --- Slash command handlers ---

    async def _handle_tournaments(self, interaction: discord.Interaction) -> None:
        """Handle the /tournaments slash command. Visible only to the invoker."""
        content = format_active_list(self.registry.active())
        await interaction.response.send_message(content, ephemeral=True)


def is_discord_enabled(settings: Settings) -> bool:
    """Discord runs only when explicitly enabled and a token is present."""
    return bool(settings.discord_enabled and settings.discord_bot_token)


async def start_discord_bot(settings: Settings, registry: TournamentRegistry) -> TourBridgeBot:
    """Create and start the Discord bot in the current event loop.

    Returns the bot instance so the caller can stop it during shutdown.
    The bot runs as a background task; this function returns immediately
    after starting it.
    """
    bot = TourBridgeBot(settings=settings, registry=registry)

    async def _run_bot() -> None:
        try:
            await bot.start(settings.discord_bot_token)
        except asyncio.CancelledError:
            logger.info("discord_bot_cancelled")
        except Exception:  # Last-resort handler: bot.start can raise connection and auth errors
            logger.exception("discord_bot_error")
        finally:
            if not bot.is_closed():
                await bot.close()

    bot.runner_task = asyncio.create_task(_run_bot(), name="discord-bot")
    logger.info("discord_bot_started")
    return bot
