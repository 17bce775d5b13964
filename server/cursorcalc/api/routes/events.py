from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator

from fastapi import APIRouter, HTTPException, Query
from starlette.responses import StreamingResponse

from cursorcalc.core.config import get_settings
from cursorcalc.services.events import event_broker

router = APIRouter(prefix="/events", tags=["events"])

HEARTBEAT_SECONDS = 10.0


def _format_event(event_type: str, payload: dict) -> bytes:
    return f"event: {event_type}\ndata: {json.dumps(payload)}\n\n".encode("utf-8")


async def _event_stream(session_id: str, *, max_events: int | None = None) -> AsyncIterator[bytes]:
    event_broker.register(session_id)
    emitted = 0
    try:
        yield _format_event("ready", {"sessionId": session_id, "status": "ready"})
        emitted += 1
        if max_events is not None and emitted >= max_events:
            return

        while True:
            try:
                event = await event_broker.next_event(session_id, timeout=HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                yield _format_event("heartbeat", {"sessionId": session_id, "status": "idle"})
                continue

            yield _format_event(event.get("type", "message"), event)
            emitted += 1
            if max_events is not None and emitted >= max_events:
                return
    finally:
        event_broker.unregister(session_id)


@router.get("")
async def stream_session_events(
    session_id: str = Query(..., alias="sessionId", min_length=1),
    max_events: int | None = Query(default=None, alias="maxEvents", ge=1, le=100),
) -> StreamingResponse:
    settings = get_settings()
    if not settings.enable_sse:
        raise HTTPException(status_code=404, detail="SSE streaming is disabled.")

    generator = _event_stream(session_id, max_events=max_events)
    return StreamingResponse(generator, media_type="text/event-stream")
