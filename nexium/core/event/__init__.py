"""Event system: instance-based EventBus and domain event names."""

from nexium.core.event.bus import EventBus
from nexium.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    GameEvent,
    ListenerPriority,
)

__all__ = [
    "CallbackType",
    "EventBus",
    "EventListener",
    "EventPayload",
    "GameEvent",
    "ListenerPriority",
]
