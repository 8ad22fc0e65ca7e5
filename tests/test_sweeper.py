"""Tests for the stale tournament sweeper."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from tourbridge.config import Settings
from tourbridge.core.messages import NO_ACTIVE_TOURNAMENTS, format_active_list
from tourbridge.core.sweeper import (
    SWEEP_JOB_ID,
    create_sweep_scheduler,
    run_sweep,
    sweep_stale_tournaments,
)
from tourbridge.models.tournament import TournamentRecord

MAX_AGE = 1800.0


async def _open(reconciler, room: str) -> None:
    await reconciler.handle_frame(f">{room}\n|tournament|create|gen9ou|Elimination|8|{room} cup")


class TestSweepStaleTournaments:
    async def test_evicts_stale_entry(self, reconciler, state, sink, clock, caplog) -> None:
        await _open(reconciler, "ou")
        clock.advance(MAX_AGE)
        with caplog.at_level(logging.INFO, logger="tourbridge.core.sweeper"):
            evicted = await sweep_stale_tournaments(
                state, sink, max_age=MAX_AGE, now=clock.now
            )
        assert [r.room for r in evicted] == ["ou"]
        assert "ou" not in state.registry
        assert sink.retracted == ["1001"]
        assert "tournament_auto_cleaned" in caplog.text
        assert format_active_list(state.registry.active()) == NO_ACTIVE_TOURNAMENTS

    async def test_keeps_fresh_entries(self, reconciler, state, sink, clock) -> None:
        await _open(reconciler, "ou")
        clock.advance(MAX_AGE - 1)
        evicted = await sweep_stale_tournaments(state, sink, max_age=MAX_AGE, now=clock.now)
        assert evicted == []
        assert "ou" in state.registry
        assert sink.retracted == []

    async def test_only_stale_entries_evicted(self, reconciler, state, sink, clock) -> None:
        await _open(reconciler, "ou")
        clock.advance(1000)
        await _open(reconciler, "lobby")
        clock.advance(900)
        evicted = await sweep_stale_tournaments(state, sink, max_age=MAX_AGE, now=clock.now)
        assert [r.room for r in evicted] == ["ou"]
        assert "lobby" in state.registry

    async def test_second_pass_is_noop(self, reconciler, state, sink, clock) -> None:
        await _open(reconciler, "ou")
        await _open(reconciler, "lobby")
        clock.advance(MAX_AGE * 2)
        first = await sweep_stale_tournaments(state, sink, max_age=MAX_AGE, now=clock.now)
        second = await sweep_stale_tournaments(state, sink, max_age=MAX_AGE, now=clock.now)
        assert len(first) == 2
        assert second == []
        assert sorted(sink.retracted) == ["1001", "1002"]

    async def test_retract_failure_still_evicts(self, reconciler, state, sink, clock) -> None:
        await _open(reconciler, "ou")
        sink.fail_retract = True
        clock.advance(MAX_AGE)
        evicted = await sweep_stale_tournaments(state, sink, max_age=MAX_AGE, now=clock.now)
        assert len(evicted) == 1
        assert len(state.registry) == 0

    async def test_end_after_sweep_is_noop(self, reconciler, state, sink, clock) -> None:
        await _open(reconciler, "ou")
        clock.advance(MAX_AGE)
        await sweep_stale_tournaments(state, sink, max_age=MAX_AGE, now=clock.now)
        await reconciler.handle_frame("|tournament|end|{}")
        assert sink.results == []
        assert sink.retracted == ["1001"]

    async def test_entry_without_message_evicted_silently(self, state, sink) -> None:
        state.registry.try_create(
            "ou",
            TournamentRecord(
                room="ou", format="gen9ou", name="Cup", external_ref=None, start_time=0.0
            ),
        )
        evicted = await sweep_stale_tournaments(state, sink, max_age=MAX_AGE, now=MAX_AGE)
        assert len(evicted) == 1
        assert sink.retracted == []


class TestRunSweep:
    async def test_errors_are_logged_not_raised(self, state, caplog) -> None:
        class BrokenSink:
            async def retract(self, ref: str):
                raise RuntimeError("boom")

        state.registry.try_create(
            "ou",
            TournamentRecord(
                room="ou", format="gen9ou", name="Cup", external_ref="1", start_time=0.0
            ),
        )
        with caplog.at_level(logging.ERROR, logger="tourbridge.core.sweeper"):
            await run_sweep(state, BrokenSink(), max_age=0)
        assert "sweep_failed" in caplog.text


class TestCreateSweepScheduler:
    def test_job_configured_from_settings(self, state, sink) -> None:
        settings = Settings(
            showdown_enabled=False,
            tourbridge_sweep_interval_seconds=60,
            tourbridge_max_tournament_age_seconds=600,
        )
        scheduler = create_sweep_scheduler(state, sink, settings)
        assert isinstance(scheduler, AsyncIOScheduler)
        job = scheduler.get_job(SWEEP_JOB_ID)
        assert job is not None
        assert isinstance(job.trigger, IntervalTrigger)
        assert job.trigger.interval.total_seconds() == 60
        assert job.kwargs["max_age"] == 600
        assert job.kwargs["state"] is state
