# product_visuals/services/broadcast/stream.py
import asyncio
from dataclasses import dataclass, field

import structlog

from product_visuals.dto.events import GenerationEvent

logger = structlog.get_logger(__name__)


@dataclass(eq=False)
class StreamSubscription:
    job_id: str
    owner_id: str | None = None
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=256))

    def matches(self, event: GenerationEvent) -> bool:
        if event.job_id != self.job_id:
            return False
        # Unauthenticated subscribers get every event of the job.
        return self.owner_id is None or event.owner_id == self.owner_id


class EventStream:
    """
    One global event stream fanned out to filtered subscriptions.
    Backs the server-sent events endpoint.
    """

    def __init__(self) -> None:
        self._subscriptions: set[StreamSubscription] = set()

    def open(self, job_id: str, owner_id: str | None = None) -> StreamSubscription:
        subscription = StreamSubscription(job_id=job_id, owner_id=owner_id)
        self._subscriptions.add(subscription)
        logger.debug("Event stream opened", job_id=job_id, authenticated=owner_id is not None)
        return subscription

    def close(self, subscription: StreamSubscription) -> None:
        self._subscriptions.discard(subscription)

    def publish(self, event: GenerationEvent) -> int:
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.matches(event):
                continue
            try:
                subscription.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Stream subscriber queue full, event dropped", job_id=event.job_id)
        return delivered

    def __len__(self) -> int:
        return len(self._subscriptions)
