"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

import json
from typing import Annotated

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

DEFAULT_SHOWDOWN_SERVER_URL = "wss://sim3.psim.us/showdown/websocket"
DEFAULT_SHOWDOWN_CLIENT_URL = "https://play.pokemonshowdown.com"

# High-traffic tournament rooms (~90% coverage).
DEFAULT_ROOMS: tuple[str, ...] = (
    "lobby",
    "ou",
    "monotype",
    "nationaldex",
    "randombattle",
    "tournaments",
    "toursminigames",
    "toursplaza",
    "smogondoubles",
)

SWEEP_INTERVAL_SECONDS = 5 * 60
MAX_TOURNAMENT_AGE_SECONDS = 30 * 60


class Settings(BaseSettings):
    """tourbridge configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Discord
    discord_bot_token: str = ""
    discord_guild_id: str = ""
    discord_channel_id: str = ""
    discord_enabled: bool = False

    # Showdown feed
    showdown_enabled: bool = True
    showdown_server_url: str = DEFAULT_SHOWDOWN_SERVER_URL
    showdown_client_url: str = DEFAULT_SHOWDOWN_CLIENT_URL
    showdown_rooms: Annotated[list[str], NoDecode] = list(DEFAULT_ROOMS)

    # Lifecycle
    tourbridge_sweep_interval_seconds: int = SWEEP_INTERVAL_SECONDS
    tourbridge_max_tournament_age_seconds: int = MAX_TOURNAMENT_AGE_SECONDS

    # Environment
    tourbridge_env: str = "development"

    # Logging
    tourbridge_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @field_validator("showdown_rooms", mode="before")
    @classmethod
    def _split_rooms(cls, value: object) -> object:
        """Accept a JSON list or a comma-separated string of room ids."""
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                return json.loads(stripped)
            return [room.strip() for room in stripped.split(",") if room.strip()]
        return value

    @model_validator(mode="after")
    def _check_lifecycle_timings(self) -> Settings:
        """Sweep interval and max age must both be positive."""
        if self.tourbridge_sweep_interval_seconds <= 0:
            raise ValueError("TOURBRIDGE_SWEEP_INTERVAL_SECONDS must be positive")
        if self.tourbridge_max_tournament_age_seconds <= 0:
            raise ValueError("TOURBRIDGE_MAX_TOURNAMENT_AGE_SECONDS must be positive")
        return self

    @model_validator(mode="after")
    def _require_channel_when_enabled(self) -> Settings:
        """An enabled bot with a token needs a numeric channel to post in."""
        if self.discord_enabled and self.discord_bot_token and not self.discord_channel_id:
            msg = "DISCORD_CHANNEL_ID must be set when Discord is enabled"
            raise ValueError(msg)
        if self.discord_channel_id and not self.discord_channel_id.isdigit():
            msg = "DISCORD_CHANNEL_ID must be a numeric channel id"
            raise ValueError(msg)
        return self

    @property
    def channel_id(self) -> int:
        """Destination channel as an int, or 0 when unset."""
        return int(self.discord_channel_id) if self.discord_channel_id else 0
