"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tourbridge.api.tournaments import router as tournaments_router
from tourbridge.config import Settings
from tourbridge.core.reconciler import TournamentReconciler
from tourbridge.core.sink import LogOnlySink, NotificationSink
from tourbridge.core.state import FeedState

logger = logging.getLogger(__name__)


async def _run_feed(
    reconciler: TournamentReconciler,
    settings: Settings,
    ready: asyncio.Event | None = None,
    bot_task: asyncio.Task[None] | None = None,
) -> None:
    """Wait for Discord (when enabled), then consume the Showdown feed.

    Gives up without connecting if ``bot_task`` finishes before ``ready`` is set,
    e.g. when the bot token is rejected.
    """
    from tourbridge.core.feed import ShowdownFeed

    if ready is not None and not await _wait_for_discord(ready, bot_task):
        logger.error("showdown_feed_not_started reason=discord_bot_stopped")
        return
    feed = ShowdownFeed(settings.showdown_server_url, settings.showdown_rooms, reconciler)
    await feed.run()


async def _wait_for_discord(ready: asyncio.Event, bot_task: asyncio.Task[None] | None) -> bool:
    """Return True once ``ready`` is set, False if the bot task ends first."""
    logger.info("showdown_feed_waiting_for_discord")
    waiter = asyncio.ensure_future(ready.wait())
    watched: set[asyncio.Future] = {waiter}
    if bot_task is not None:
        watched.add(bot_task)
    try:
        await asyncio.wait(watched, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
    return ready.is_set()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: build feed state, optionally start Discord, the sweeper and the feed."""
    settings: Settings = app.state.settings
    state: FeedState = app.state.feed_state

    # Start Discord bot if configured
    discord_bot = None
    sink: NotificationSink
    from tourbridge.discord.bot import is_discord_enabled

    if is_discord_enabled(settings):
        from tourbridge.discord.bot import start_discord_bot
        from tourbridge.discord.sink import DiscordChannelSink

        discord_bot = await start_discord_bot(settings, state.registry)
        sink = DiscordChannelSink(discord_bot, settings.channel_id)
        app.state.discord_bot = discord_bot
        logger.info("discord_bot_integration_started")
    else:
        sink = LogOnlySink()
        logger.info("discord_bot_integration_disabled")

    reconciler = TournamentReconciler(state, sink, client_url=settings.showdown_client_url)
    app.state.reconciler = reconciler

    # Start APScheduler for the stale tournament sweep
    from tourbridge.core.sweeper import create_sweep_scheduler

    scheduler = create_sweep_scheduler(state, sink, settings)
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info(
        "scheduler_started interval=%ds max_age=%ds",
        settings.tourbridge_sweep_interval_seconds,
        settings.tourbridge_max_tournament_age_seconds,
    )

    feed_task: asyncio.Task[None] | None = None
    if settings.showdown_enabled:
        ready = discord_bot.connected if discord_bot is not None else None
        bot_task = discord_bot.runner_task if discord_bot is not None else None
        feed_task = asyncio.create_task(
            _run_feed(reconciler, settings, ready, bot_task), name="showdown-feed"
        )
        logger.info("showdown_feed_started rooms=%d", len(settings.showdown_rooms))
    else:
        logger.info("showdown_feed_disabled")

    yield

    # Shutdown feed
    if feed_task is not None and not feed_task.done():
        feed_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await feed_task
        logger.info("showdown_feed_stopped")

    # Shutdown scheduler
    scheduler.shutdown(wait=False)
    logger.info("scheduler_stopped")

    # Shutdown Discord bot if running
    if discord_bot is not None:
        await discord_bot.close()
        logger.info("discord_bot_integration_stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the tourbridge FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.tourbridge_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="tourbridge",
        version="0.1.0",
        description="Pokemon Showdown tournaments mirrored into a Discord channel",
        docs_url="/docs" if settings.tourbridge_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.feed_state = FeedState()

    app.include_router(tournaments_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.tourbridge_env}

    return app


app = create_app()
