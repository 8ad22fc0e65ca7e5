"""Notification sink interface and failure policy.

The sink is where tournament announcements go (a Discord channel in
production). Sink implementations never raise for platform errors; every
call returns a SinkResult and the caller consults SINK_FAILURE_POLICY to
decide whether a failure blocks the state transition.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Protocol

logger = logging.getLogger(__name__)


class SinkAction(StrEnum):
    ANNOUNCE_OPEN = "announce_open"
    ANNOUNCE_RESULT = "announce_result"
    RETRACT = "retract"


class FailurePolicy(Enum):
    """What a failed sink call does to the surrounding transition."""

    BLOCK = "block"  # abort the transition, no registry mutation
    IGNORE = "ignore"  # log and carry on


# Only the open announcement gates a registry insert: a record without an
# announcement to retract would be an orphan.
SINK_FAILURE_POLICY: dict[SinkAction, FailurePolicy] = {
    SinkAction.ANNOUNCE_OPEN: FailurePolicy.BLOCK,
    SinkAction.ANNOUNCE_RESULT: FailurePolicy.IGNORE,
    SinkAction.RETRACT: FailurePolicy.IGNORE,
}


def blocks_transition(action: SinkAction, result: SinkResult) -> bool:
    """True when a failed call for ``action`` must abort the surrounding transition."""
    return not result.ok and SINK_FAILURE_POLICY[action] is FailurePolicy.BLOCK


@dataclass(frozen=True)
class SinkResult:
    """Outcome of one sink call. ``ref`` identifies a sent message."""

    ok: bool
    ref: str | None = None
    error: str = ""

    @classmethod
    def success(cls, ref: str | None = None) -> SinkResult:
        return cls(ok=True, ref=ref)

    @classmethod
    def failure(cls, error: str) -> SinkResult:
        return cls(ok=False, error=error)


class NotificationSink(Protocol):
    async def announce_open(self, text: str) -> SinkResult: ...

    async def announce_result(self, text: str) -> SinkResult: ...

    async def retract(self, ref: str) -> SinkResult: ...


class LogOnlySink:
    """Sink used when Discord is disabled: logs every action, never fails."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)

    async def announce_open(self, text: str) -> SinkResult:
        ref = f"log-{next(self._ids)}"
        logger.info("sink_announce_open ref=%s text=%r", ref, text)
        return SinkResult.success(ref)

    async def announce_result(self, text: str) -> SinkResult:
        ref = f"log-{next(self._ids)}"
        logger.info("sink_announce_result ref=%s text=%r", ref, text)
        return SinkResult.success(ref)

    async def retract(self, ref: str) -> SinkResult:
        logger.info("sink_retract ref=%s", ref)
        return SinkResult.success(ref)
