# File: product_visuals/dto/events.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from product_visuals.data.constants import EventName
from product_visuals.dto.generation_job import utcnow


class GenerationEvent(BaseModel):
    """One broadcast message. `job_id` and `owner_id` are used for routing only."""
    event: EventName
    job_id: str
    owner_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)

    def to_wire(self) -> dict[str, Any]:
        return {
            "event": self.event.value,
            "generation_id": self.job_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }
