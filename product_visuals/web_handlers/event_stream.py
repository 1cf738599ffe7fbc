# product_visuals/web_handlers/event_stream.py
import asyncio
from typing import TYPE_CHECKING

import orjson
import structlog
from aiohttp import web

from product_visuals.data.constants import EventName
from product_visuals.data.settings import settings
from product_visuals.utils.auth import bearer_from_header, verify_token

if TYPE_CHECKING:
    from product_visuals.dto.events import GenerationEvent
    from product_visuals.services.broadcast.stream import EventStream

logger = structlog.get_logger(__name__)


def format_sse(event: "GenerationEvent") -> bytes:
    payload = orjson.dumps(event.to_wire())
    return b"event: " + event.event.value.encode() + b"\ndata: " + payload + b"\n\n"


async def stream_generation_events(req: web.Request) -> web.StreamResponse:
    """
    Server-sent events for one generation.

    A valid bearer token (query `token` or Authorization header) narrows the
    stream to the token owner's events. A missing or invalid token does not
    close the stream; it falls back to matching by generation id only.
    The stream ends after the `complete` event.
    """
    job_id = req.match_info["job_id"]
    token = req.query.get("token") or bearer_from_header(req.headers.get("Authorization"))
    owner_id = verify_token(token)
    log = logger.bind(job_id=job_id, authenticated=owner_id is not None)
    if token and owner_id is None:
        log.info("Invalid stream token, continuing unauthenticated")

    resp = web.StreamResponse(
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        }
    )
    await resp.prepare(req)

    stream: EventStream = req.app["event_stream"]
    keepalive_s: float = req.app.get("sse_keepalive_s", settings.web.sse_keepalive_s)
    subscription = stream.open(job_id, owner_id)
    try:
        await resp.write(b": connected\n\n")
        while True:
            try:
                event = await asyncio.wait_for(subscription.queue.get(), timeout=keepalive_s)
            except asyncio.TimeoutError:
                await resp.write(b": keepalive\n\n")
                continue
            await resp.write(format_sse(event))
            if event.event is EventName.COMPLETE:
                break
    except ConnectionResetError:
        log.info("SSE client disconnected")
    finally:
        stream.close(subscription)

    return resp


routes = [
    web.get("/generations/{job_id}/stream", stream_generation_events),
]
