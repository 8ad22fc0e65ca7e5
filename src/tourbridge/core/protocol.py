"""Showdown protocol line parser.

A frame from the Showdown websocket holds one or more newline-separated
lines. Each non-empty line is classified into exactly one tagged variant;
room attribution is not decided here. The reconciler reads the room cursor
at the moment it processes each line.

Line shapes consumed::

    >ou
    |tournament|create|gen9ou|Elimination|8|Gen9OU Cup
    |tournament|end|{"results":[["Alice"],["Bob"],["Carol"]], ...}
    |tournament|forceend
    |tournament|expire
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import ValidationError

from tourbridge.models.tournament import TournamentResults

logger = logging.getLogger(__name__)

ROOM_MARKER = ">"
FIELD_SEPARATOR = "|"
CREATE_PREFIX = "|tournament|create|"
END_PREFIX = "|tournament|end|"
FORCEEND_PREFIX = "|tournament|forceend"
EXPIRE_PREFIX = "|tournament|expire"

FORMAT_FIELD = 3
NAME_FIELD = 6


class LineKind(StrEnum):
    ROOM_MARKER = "room_marker"
    CREATE = "create"
    END = "end"
    TERMINATE = "terminate"
    UNCLASSIFIED = "unclassified"


class TerminationReason(StrEnum):
    """Why a tournament stopped without final results."""

    FORCEEND = "forceend"
    EXPIRE = "expire"


@dataclass(frozen=True)
class RoomMarker:
    room: str
    kind: LineKind = field(default=LineKind.ROOM_MARKER, init=False)


@dataclass(frozen=True)
class TournamentCreated:
    format: str
    name: str
    kind: LineKind = field(default=LineKind.CREATE, init=False)


@dataclass(frozen=True)
class TournamentEnded:
    """Normal end. ``results`` is None when absent or unparseable."""

    results: TournamentResults | None
    kind: LineKind = field(default=LineKind.END, init=False)


@dataclass(frozen=True)
class TournamentTerminated:
    reason: TerminationReason
    kind: LineKind = field(default=LineKind.TERMINATE, init=False)


@dataclass(frozen=True)
class Unclassified:
    line: str
    kind: LineKind = field(default=LineKind.UNCLASSIFIED, init=False)


ParsedLine = RoomMarker | TournamentCreated | TournamentEnded | TournamentTerminated | Unclassified


def parse_frame(frame: str) -> Iterator[ParsedLine]:
    """Yield one parsed event per non-empty line of ``frame``, in order."""
    for raw in frame.split("\n"):
        line = raw.rstrip("\r")
        if not line:
            continue
        yield parse_line(line)


def parse_line(line: str) -> ParsedLine:
    """Classify a single protocol line. Never raises."""
    if line.startswith(ROOM_MARKER):
        return RoomMarker(room=line[len(ROOM_MARKER) :])

    if line.startswith(CREATE_PREFIX):
        return _parse_create(line)

    if line.startswith(END_PREFIX):
        return TournamentEnded(results=parse_results(line[len(END_PREFIX) :]))

    if line.startswith(FORCEEND_PREFIX):
        return TournamentTerminated(reason=TerminationReason.FORCEEND)
    if line.startswith(EXPIRE_PREFIX):
        return TournamentTerminated(reason=TerminationReason.EXPIRE)

    return Unclassified(line=line)


def _parse_create(line: str) -> TournamentCreated:
    parts = line.split(FIELD_SEPARATOR)
    fmt = parts[FORMAT_FIELD] if len(parts) > FORMAT_FIELD else ""
    name = parts[NAME_FIELD] if len(parts) > NAME_FIELD else ""
    return TournamentCreated(format=fmt, name=name or fmt)


def parse_results(payload: str) -> TournamentResults | None:
    """Parse the JSON body of an end line.

    Malformed JSON, a non-object body, or a results field of the wrong shape
    all yield None. An object without results yields None as well, so callers
    only need one check before composing a summary.
    """
    if not payload.strip():
        return None
    try:
        parsed = TournamentResults.model_validate_json(payload)
    except ValidationError:
        logger.debug("tournament_end_payload_unparseable payload=%.80s", payload)
        return None
    if not parsed.has_placings:
        return None
    return parsed
