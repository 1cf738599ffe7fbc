# product_visuals/services/broadcast/__init__.py
from .publisher import ProgressPublisher
from .rooms import RoomBroker, Subscriber, room_for
from .stream import EventStream, StreamSubscription

__all__ = [
    "EventStream",
    "ProgressPublisher",
    "RoomBroker",
    "StreamSubscription",
    "Subscriber",
    "room_for",
]
