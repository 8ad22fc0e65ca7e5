"""Showdown websocket feed.

Connects to the Showdown server, joins the configured rooms, and hands each
frame to the reconciler. Frames are processed one at a time: the next frame
is not read until the previous one has finished, side effects included.

A dropped connection is logged and ``run`` returns. There is no reconnect;
a new connection starts with the room cursor unset.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import websockets
from websockets.exceptions import WebSocketException

from tourbridge.core.reconciler import TournamentReconciler

logger = logging.getLogger(__name__)

OPEN_TIMEOUT_SECONDS = 10


def join_commands(rooms: Sequence[str]) -> list[str]:
    """Protocol messages that subscribe the connection to ``rooms``."""
    return [f"|/join {room}" for room in rooms]


class ShowdownFeed:
    """One websocket connection feeding one reconciler."""

    def __init__(
        self,
        url: str,
        rooms: Sequence[str],
        reconciler: TournamentReconciler,
    ) -> None:
        self.url = url
        self.rooms = list(rooms)
        self.reconciler = reconciler
        self.frames_processed = 0

    async def run(self) -> None:
        """Connect and consume frames until the server closes the connection."""
        try:
            async with websockets.connect(self.url, open_timeout=OPEN_TIMEOUT_SECONDS) as ws:
                logger.info("showdown_connected url=%s", self.url)
                self.reconciler.state.cursor.reset()
                for command in join_commands(self.rooms):
                    await ws.send(command)
                logger.info("showdown_rooms_joined rooms=%s", ",".join(self.rooms))

                async for message in ws:
                    frame = message.decode() if isinstance(message, bytes) else message
                    await self.process(frame)
        except (WebSocketException, OSError) as exc:
            logger.warning("showdown_connection_error url=%s err=%s", self.url, exc)
        else:
            logger.info("showdown_connection_closed url=%s", self.url)

    async def process(self, frame: str) -> None:
        """Feed one frame to the reconciler, logging rather than raising."""
        try:
            await self.reconciler.handle_frame(frame)
        except Exception:  # Last-resort handler: one bad frame must not end the feed
            logger.exception("showdown_frame_error frame=%.80s", frame)
        self.frames_processed += 1
