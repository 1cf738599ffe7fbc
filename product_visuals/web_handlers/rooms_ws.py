# product_visuals/web_handlers/rooms_ws.py
import asyncio
from contextlib import suppress
from typing import TYPE_CHECKING

import orjson
import structlog
from aiohttp import WSMsgType, web

from product_visuals.services.broadcast.rooms import Subscriber, room_for

if TYPE_CHECKING:
    from product_visuals.services.broadcast.rooms import RoomBroker

logger = structlog.get_logger(__name__)


def _frame(event: str, data: dict) -> str:
    return orjson.dumps({"event": event, "data": data}).decode()


async def _forward(ws: web.WebSocketResponse, subscriber: Subscriber) -> None:
    async for event in subscriber:
        if ws.closed:
            return
        wire = event.to_wire()
        data = {**wire["data"], "generation_id": wire["generation_id"], "timestamp": wire["timestamp"]}
        try:
            await ws.send_str(_frame(wire["event"], data))
        except ConnectionResetError:
            logger.debug("WebSocket gone while forwarding", event_name=wire["event"])
            return


async def _handle_message(
    ws: web.WebSocketResponse, broker: "RoomBroker", subscriber: Subscriber, raw: str
) -> None:
    try:
        message = orjson.loads(raw)
        action = message["action"]
        generation_id = str(message["generation_id"])
    except (orjson.JSONDecodeError, KeyError, TypeError):
        await ws.send_str(_frame("error", {"message": "Malformed message"}))
        return

    match action:
        case "subscribe":
            await broker.subscribe(room_for(generation_id), subscriber)
            reply = "subscribed"
        case "unsubscribe":
            await broker.unsubscribe(room_for(generation_id), subscriber)
            reply = "unsubscribed"
        case _:
            await ws.send_str(_frame("error", {"message": f"Unknown action: {action}"}))
            return
    logger.debug("Room membership changed", action=action, generation_id=generation_id)
    await ws.send_str(_frame(reply, {"generation_id": generation_id}))


async def generations_ws(req: web.Request) -> web.WebSocketResponse:
    """
    Room-based live updates. The client sends
    {"action": "subscribe" | "unsubscribe", "generation_id": ...}
    and receives every event published to the rooms it joined.
    """
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(req)

    broker: RoomBroker = req.app["broker"]
    subscriber = Subscriber()
    forwarder = asyncio.create_task(_forward(ws, subscriber))
    try:
        async for msg in ws:
            if msg.type is WSMsgType.TEXT:
                await _handle_message(ws, broker, subscriber, msg.data)
            elif msg.type is WSMsgType.ERROR:
                logger.warning("WebSocket closed with exception", error=str(ws.exception()))
    finally:
        await broker.unsubscribe_all(subscriber)
        forwarder.cancel()
        with suppress(asyncio.CancelledError):
            await forwarder
    return ws


routes = [
    web.get("/ws/generations", generations_ws),
]
