"""Server-sent change notifications."""

import asyncio
import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from scoreboard.services.changes import ChangeEvent, change_feed

logger = logging.getLogger(__name__)

router = APIRouter()

KEEPALIVE_SECONDS = 15
QUEUE_SIZE = 100


def format_event(change: ChangeEvent) -> str:
    """Render a change as one SSE message."""
    return f"event: change\ndata: {json.dumps(change.as_dict())}\n\n"


@router.get("/stream")
async def stream_changes(request: Request):
    """
    Stream committed changes as Server-Sent Events.
    Clients refetch whatever the event's table affects.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=QUEUE_SIZE)

    def offer(change: ChangeEvent) -> None:
        try:
            queue.put_nowait(change)
        except asyncio.QueueFull:
            # queued events already trigger a full refetch
            pass

    def on_change(change: ChangeEvent) -> None:
        loop.call_soon_threadsafe(offer, change)

    unsubscribe = change_feed.subscribe(on_change)

    async def event_stream():
        try:
            yield ": connected\n\n"
            while not await request.is_disconnected():
                try:
                    change = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield format_event(change)
        finally:
            unsubscribe()
            logger.debug("Change stream closed")

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
