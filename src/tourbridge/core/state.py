"""In-memory feed state: the room cursor and the tournament registry.

FeedState is the context object the reconciler and the sweeper share. One
instance exists per feed connection; nothing here is a module-level
singleton. Both actors take ``FeedState.lock`` around their passes, so the
cursor and the registry only ever see one writer at a time.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from tourbridge.models.tournament import TournamentRecord


def dedup_key(room: str) -> str:
    """Registry key for a tournament in ``room``.

    Keyed by room alone: at most one concurrent tournament per room. End
    lines carry no format, so a room+format key could not be matched back.
    """
    return room


class RoomCursor:
    """The room that subsequent non-marker lines belong to."""

    def __init__(self) -> None:
        self._current: str | None = None

    @property
    def current(self) -> str | None:
        return self._current

    def set_current(self, room: str) -> None:
        self._current = room

    def reset(self) -> None:
        self._current = None


class TournamentRegistry:
    """Dedup key → TournamentRecord. Records are inserted once and removed once."""

    def __init__(self) -> None:
        self._entries: dict[str, TournamentRecord] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def try_create(self, key: str, record: TournamentRecord) -> bool:
        """Insert ``record`` iff ``key`` is absent. Returns whether it was inserted."""
        if key in self._entries:
            return False
        self._entries[key] = record
        return True

    def find(self, key: str) -> TournamentRecord | None:
        return self._entries.get(key)

    def remove_by_room(self, room: str) -> TournamentRecord | None:
        """Remove and return the first record running in ``room``."""
        for key, record in self._entries.items():
            if record.room == room:
                del self._entries[key]
                return record
        return None

    def remove(
        self, key: str, expected: TournamentRecord | None = None
    ) -> TournamentRecord | None:
        """Remove ``key`` if present.

        A missing key is a no-op. With ``expected``, the entry is only removed
        while it is still that exact record.
        """
        record = self._entries.get(key)
        if record is None:
            return None
        if expected is not None and record is not expected:
            return None
        del self._entries[key]
        return record

    def older_than(self, now: float, max_age: float) -> list[tuple[str, TournamentRecord]]:
        """Entries whose age at ``now`` is at least ``max_age`` seconds."""
        return [
            (key, record)
            for key, record in self._entries.items()
            if record.age(now) >= max_age
        ]

    def active(self) -> list[TournamentRecord]:
        """Snapshot of all live records, oldest first."""
        return sorted(self._entries.values(), key=lambda r: r.start_time)


@dataclass
class FeedState:
    """Everything one feed connection tracks."""

    cursor: RoomCursor = field(default_factory=RoomCursor)
    registry: TournamentRegistry = field(default_factory=TournamentRegistry)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
