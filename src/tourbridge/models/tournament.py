"""Tournament models.

TournamentRecord is the registry's unit of state: created once when an open
announcement succeeds, never mutated, dropped when the tournament ends.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Winner, runner-up, third place.
MAX_PLACINGS = 3


class TournamentRecord(BaseModel):
    """One tournament the bridge has announced and is still tracking."""

    model_config = ConfigDict(frozen=True)

    room: str
    format: str
    name: str
    external_ref: str | None  # None when the open announcement failed but did not block
    start_time: float  # time.monotonic() at creation

    def age(self, now: float) -> float:
        return now - self.start_time


class TournamentResults(BaseModel):
    """Final placings from an end event.

    Each placing is a list of player names: one name for a 1v1 tournament,
    several for a team tournament.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    results: list[list[str]] = Field(default_factory=list)

    @field_validator("results", mode="before")
    @classmethod
    def _wrap_single_names(cls, value: object) -> object:
        """Showdown occasionally sends a bare name instead of a one-element list."""
        if value is None:
            return []
        if isinstance(value, list):
            return [[entry] if isinstance(entry, str) else entry for entry in value]
        return value

    @property
    def placings(self) -> list[list[str]]:
        """The podium slots in order. A slot with nobody in it stays empty."""
        return self.results[:MAX_PLACINGS]

    @property
    def has_placings(self) -> bool:
        return any(self.placings)
