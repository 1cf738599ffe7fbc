# product_visuals/services/broadcast/rooms.py
import asyncio
from collections.abc import AsyncIterator

import structlog

from product_visuals.data.constants import ROOM_PREFIX
from product_visuals.dto.events import GenerationEvent

logger = structlog.get_logger(__name__)


def room_for(job_id: str) -> str:
    return f"{ROOM_PREFIX}{job_id}"


class Subscriber:
    """
    One client's inbox. A subscriber may sit in several rooms at once; events
    that do not fit in the queue are dropped.
    """

    def __init__(self, maxsize: int = 256) -> None:
        self.queue: asyncio.Queue[GenerationEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def deliver(self, event: GenerationEvent) -> bool:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def get(self) -> GenerationEvent:
        return await self.queue.get()

    async def __aiter__(self) -> AsyncIterator[GenerationEvent]:
        while True:
            yield await self.queue.get()


class RoomBroker:
    """Topic -> subscribers map. Late joiners get no replay."""

    def __init__(self) -> None:
        self._rooms: dict[str, set[Subscriber]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, topic: str, subscriber: Subscriber | None = None) -> Subscriber:
        subscriber = subscriber or Subscriber()
        async with self._lock:
            self._rooms.setdefault(topic, set()).add(subscriber)
        logger.debug("Subscriber joined room", topic=topic)
        return subscriber

    async def unsubscribe(self, topic: str, subscriber: Subscriber) -> None:
        async with self._lock:
            members = self._rooms.get(topic)
            if not members:
                return
            members.discard(subscriber)
            if not members:
                del self._rooms[topic]
        logger.debug("Subscriber left room", topic=topic)

    async def unsubscribe_all(self, subscriber: Subscriber) -> None:
        async with self._lock:
            for topic in [t for t, members in self._rooms.items() if subscriber in members]:
                self._rooms[topic].discard(subscriber)
                if not self._rooms[topic]:
                    del self._rooms[topic]

    async def publish(self, topic: str, event: GenerationEvent) -> int:
        """Returns the number of subscribers the event was queued for."""
        async with self._lock:
            members = list(self._rooms.get(topic, ()))
        delivered = sum(1 for m in members if m.deliver(event))
        if delivered < len(members):
            logger.warning("Room subscriber queue full, event dropped", topic=topic, event_name=event.event.value)
        return delivered

    def room_size(self, topic: str) -> int:
        return len(self._rooms.get(topic, ()))
