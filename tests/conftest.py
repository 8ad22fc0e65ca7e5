"""Shared test fixtures."""

from __future__ import annotations

import pytest

from tourbridge.config import Settings
from tourbridge.core.reconciler import TournamentReconciler
from tourbridge.core.sink import SinkResult
from tourbridge.core.state import FeedState

CLIENT_URL = "https://play.pokemonshowdown.com"


class RecordingSink:
    """In-memory sink that records every call. Flip the ``fail_*`` flags to fail."""

    def __init__(self) -> None:
        self.opened: list[str] = []
        self.results: list[str] = []
        self.retracted: list[str] = []
        self.fail_open = False
        self.fail_result = False
        self.fail_retract = False
        self._next_id = 1000

    async def announce_open(self, text: str) -> SinkResult:
        if self.fail_open:
            return SinkResult.failure("send rejected")
        self.opened.append(text)
        self._next_id += 1
        return SinkResult.success(str(self._next_id))

    async def announce_result(self, text: str) -> SinkResult:
        if self.fail_result:
            return SinkResult.failure("send rejected")
        self.results.append(text)
        self._next_id += 1
        return SinkResult.success(str(self._next_id))

    async def retract(self, ref: str) -> SinkResult:
        self.retracted.append(ref)
        if self.fail_retract:
            return SinkResult.failure("missing permissions")
        return SinkResult.success(ref)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(tourbridge_env="development", showdown_enabled=False, discord_enabled=False)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state() -> FeedState:
    return FeedState()


@pytest.fixture
def reconciler(state: FeedState, sink: RecordingSink, clock: FakeClock) -> TournamentReconciler:
    return TournamentReconciler(state, sink, client_url=CLIENT_URL, clock=clock)
