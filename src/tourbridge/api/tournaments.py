"""Active tournaments API endpoint."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from tourbridge.core.state import FeedState

router = APIRouter(prefix="/api", tags=["tournaments"])


def _get_feed_state(request: Request) -> FeedState:
    """Get the FeedState from app state."""
    return request.app.state.feed_state


@router.get("/tournaments")
async def list_tournaments(request: Request) -> dict:
    """Tournaments currently tracked by the reconciler, oldest first."""
    state = _get_feed_state(request)
    now = time.monotonic()
    return {
        "data": [
            {
                "room": record.room,
                "format": record.format,
                "name": record.name,
                "age_seconds": round(record.age(now)),
            }
            for record in state.registry.active()
        ]
    }
