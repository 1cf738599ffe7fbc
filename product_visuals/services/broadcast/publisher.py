# product_visuals/services/broadcast/publisher.py
from typing import Any

import structlog

from product_visuals.data.constants import EventName
from product_visuals.dto.events import GenerationEvent
from product_visuals.services.broadcast.rooms import RoomBroker, room_for
from product_visuals.services.broadcast.stream import EventStream

logger = structlog.get_logger(__name__)


class ProgressPublisher:
    """
    Sends orchestrator events to the job room and to the global stream.
    Delivery is best effort: a failing transport is logged and skipped.
    """

    def __init__(self, broker: RoomBroker, stream: EventStream) -> None:
        self.broker = broker
        self.stream = stream

    async def publish(self, event: GenerationEvent) -> None:
        log = logger.bind(job_id=event.job_id, event_name=event.event.value)
        try:
            await self.broker.publish(room_for(event.job_id), event)
        except Exception:
            log.warning("Room broadcast failed", exc_info=True)
        try:
            self.stream.publish(event)
        except Exception:
            log.warning("Stream broadcast failed", exc_info=True)

    async def emit(
        self, name: EventName, job_id: str, owner_id: str | None = None, **data: Any
    ) -> GenerationEvent:
        event = GenerationEvent(event=name, job_id=job_id, owner_id=owner_id, data=data)
        await self.publish(event)
        return event
