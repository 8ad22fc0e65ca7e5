"""Tournament lifecycle reconciler.

Applies parsed protocol lines to the feed state and drives the notification
sink. Per room, a tournament is either Idle (no registry entry) or Open:

    Idle --create--> Open            announce, then insert on success
    Open --end--> Idle               result summary or "finished", retract
    Open --forceend/expire--> Idle   retract
    Idle --end/forceend/expire-->    no-op (never observed the create)

Sink failures are logged. Only a failed open announcement stops the
transition; see ``SINK_FAILURE_POLICY``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum

from tourbridge.core.messages import (
    format_finished,
    format_open_announcement,
    format_result_summary,
    join_url,
)
from tourbridge.core.protocol import (
    ParsedLine,
    RoomMarker,
    TerminationReason,
    TournamentCreated,
    TournamentEnded,
    TournamentTerminated,
    Unclassified,
    parse_frame,
)
from tourbridge.core.sink import (
    SINK_FAILURE_POLICY,
    NotificationSink,
    SinkAction,
    SinkResult,
    blocks_transition,
)
from tourbridge.core.state import FeedState, dedup_key
from tourbridge.models.tournament import TournamentRecord

logger = logging.getLogger(__name__)


class Transition(StrEnum):
    """What one line did to the feed state."""

    ROOM_CHANGED = "room_changed"
    OPENED = "opened"
    DUPLICATE = "duplicate"
    ANNOUNCE_FAILED = "announce_failed"
    ENDED = "ended"
    FORCE_ENDED = "force_ended"
    EXPIRED = "expired"
    IGNORED = "ignored"


_TERMINATION_TRANSITIONS = {
    TerminationReason.FORCEEND: Transition.FORCE_ENDED,
    TerminationReason.EXPIRE: Transition.EXPIRED,
}


class TournamentReconciler:
    """Consumes feed frames and keeps the registry and the sink in step."""

    def __init__(
        self,
        state: FeedState,
        sink: NotificationSink,
        *,
        client_url: str,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.sink = sink
        self.client_url = client_url
        self._clock = clock

    async def handle_frame(self, frame: str) -> list[Transition]:
        """Process every line of ``frame`` in order, awaiting each side effect.

        Holds the state lock for the whole frame so a later frame, or a sweep,
        cannot run while a line of this one is suspended on the sink.
        """
        transitions: list[Transition] = []
        async with self.state.lock:
            for event in parse_frame(frame):
                transitions.append(await self.apply(event))
        return transitions

    async def apply(self, event: ParsedLine) -> Transition:
        """Apply a single parsed line. Caller holds the state lock."""
        if isinstance(event, RoomMarker):
            self.state.cursor.set_current(event.room)
            return Transition.ROOM_CHANGED
        if isinstance(event, TournamentCreated):
            return await self._on_created(event)
        if isinstance(event, TournamentEnded):
            return await self._on_ended(event)
        if isinstance(event, TournamentTerminated):
            return await self._on_terminated(event)
        if isinstance(event, Unclassified):
            return Transition.IGNORED
        raise TypeError(f"unhandled protocol event {event!r}")

    async def _on_created(self, event: TournamentCreated) -> Transition:
        room = self.state.cursor.current
        if room is None:
            logger.debug("tournament_create_without_room format=%s", event.format)
            return Transition.IGNORED

        key = dedup_key(room)
        if self.state.registry.find(key) is not None:
            return Transition.DUPLICATE

        logger.info(
            "tournament_detected name=%s format=%s room=%s", event.name, event.format, room
        )
        text = format_open_announcement(
            event.format, event.name, room, join_url(self.client_url, room)
        )
        result = await self._call(SinkAction.ANNOUNCE_OPEN, self.sink.announce_open(text), room)
        if blocks_transition(SinkAction.ANNOUNCE_OPEN, result):
            return Transition.ANNOUNCE_FAILED

        record = TournamentRecord(
            room=room,
            format=event.format,
            name=event.name,
            external_ref=result.ref,
            start_time=self._clock(),
        )
        if not self.state.registry.try_create(key, record):
            # Lost a race for the key: the new announcement has no record behind it.
            logger.warning("tournament_create_race room=%s ref=%s", room, result.ref)
            await self._retract(result.ref, room)
            return Transition.DUPLICATE
        return Transition.OPENED

    async def _on_ended(self, event: TournamentEnded) -> Transition:
        record = self._take_current_room_record()
        if record is None:
            return Transition.IGNORED

        if event.results is not None:
            text = format_result_summary(record, event.results)
        else:
            text = format_finished(record)
        await self._call(SinkAction.ANNOUNCE_RESULT, self.sink.announce_result(text), record.room)
        await self._retract(record.external_ref, record.room)
        logger.info("tournament_ended name=%s room=%s", record.name, record.room)
        return Transition.ENDED

    async def _on_terminated(self, event: TournamentTerminated) -> Transition:
        record = self._take_current_room_record()
        if record is None:
            return Transition.IGNORED

        await self._retract(record.external_ref, record.room)
        logger.info(
            "tournament_terminated reason=%s name=%s room=%s",
            event.reason,
            record.name,
            record.room,
        )
        return _TERMINATION_TRANSITIONS[event.reason]

    async def _retract(self, ref: str | None, room: str) -> None:
        # An open announcement that failed under an IGNORE policy left nothing to delete.
        if ref is None:
            return
        await self._call(SinkAction.RETRACT, self.sink.retract(ref), room)

    def _take_current_room_record(self) -> TournamentRecord | None:
        """Remove and return the open record for the cursor's room, if any."""
        room = self.state.cursor.current
        if room is None:
            return None
        return self.state.registry.remove_by_room(room)

    async def _call(
        self, action: SinkAction, call: Awaitable[SinkResult], room: str
    ) -> SinkResult:
        result = await call
        if not result.ok:
            policy = SINK_FAILURE_POLICY[action]
            logger.warning(
                "sink_call_failed action=%s room=%s policy=%s error=%s",
                action,
                room,
                policy.value,
                result.error,
            )
        return result
