"""Stale tournament sweeper.

Provides ``sweep_stale_tournaments`` which APScheduler runs on a fixed
interval. It evicts registry entries older than the max age and retracts
their announcements. This covers end events the feed never delivered
(dropped connection, unsupported variant, server bug), so the registry
cannot grow without bound and announcements do not linger.

Errors are logged but never propagated so the scheduler keeps running.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from tourbridge.core.sink import NotificationSink
from tourbridge.core.state import FeedState
from tourbridge.models.tournament import TournamentRecord

if TYPE_CHECKING:
    from tourbridge.config import Settings

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "sweep_stale_tournaments"


async def sweep_stale_tournaments(
    state: FeedState,
    sink: NotificationSink,
    *,
    max_age: float,
    now: float | None = None,
) -> list[TournamentRecord]:
    """Evict every entry at least ``max_age`` seconds old. Returns the evicted records.

    Each entry is removed only while it is still the record this pass saw, so
    an entry the reconciler already ended (or replaced) is left alone.
    """
    evicted: list[TournamentRecord] = []
    async with state.lock:
        current = time.monotonic() if now is None else now
        for key, record in state.registry.older_than(current, max_age):
            if state.registry.remove(key, expected=record) is None:
                continue
            evicted.append(record)
            logger.info(
                "tournament_auto_cleaned name=%s room=%s age=%.0fs",
                record.name,
                record.room,
                record.age(current),
            )
            if record.external_ref is None:
                continue
            result = await sink.retract(record.external_ref)
            if not result.ok:
                logger.warning(
                    "sweep_retract_failed room=%s ref=%s error=%s",
                    record.room,
                    record.external_ref,
                    result.error,
                )
    return evicted


async def run_sweep(state: FeedState, sink: NotificationSink, max_age: float) -> None:
    """Scheduler entry point."""
    try:
        await sweep_stale_tournaments(state, sink, max_age=max_age)
    except Exception:  # Last-resort handler: the job runs again next interval
        logger.exception("sweep_failed")


def create_sweep_scheduler(
    state: FeedState,
    sink: NotificationSink,
    settings: Settings,
) -> AsyncIOScheduler:
    """Build (but do not start) the scheduler that runs the sweep."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_sweep,
        trigger=IntervalTrigger(seconds=settings.tourbridge_sweep_interval_seconds),
        kwargs={
            "state": state,
            "sink": sink,
            "max_age": settings.tourbridge_max_tournament_age_seconds,
        },
        id=SWEEP_JOB_ID,
        name="Sweep stale tournaments",
        replace_existing=True,
    )
    return scheduler
