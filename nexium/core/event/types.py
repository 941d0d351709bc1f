"""
Core event types for the Nexium EventBus.

Priority Levels
---------------
- CRITICAL (0): sequential, awaited, timeout-protected.
- HIGH (10): sequential, awaited, timeout-protected.
- NORMAL (50): concurrent (asyncio.gather), awaited.
- LOW (100): fire-and-forget background task.

Domain event names published by the game service live in `GameEvent`;
listeners may also subscribe with wildcard patterns such as ``"listing_*"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

EventPayload = dict[str, Any]


class ListenerPriority(Enum):
    """Lower value runs earlier."""

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


class GameEvent(str, Enum):
    """Domain events emitted after a command's transaction commits."""

    SECTOR_DISCOVERED = "sector_discovered"
    BATTLE_COMPLETED = "battle_completed"
    LISTING_CREATED = "listing_created"
    LISTING_SOLD = "listing_sold"
    LISTING_EXPIRED = "listing_expired"


CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    A registered listener.

    `once` listeners are removed from the registry before their first call.
    """

    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
        once: bool,
    ) -> EventListener:
        if identifier is None:
            module = getattr(callback, "__module__", "unknown")
            qualname = getattr(callback, "__qualname__", getattr(callback, "__name__", "callback"))
            identifier = f"{module}.{qualname}@{event_name}"
        return cls(callback=callback, priority=priority, identifier=identifier, once=once)


def pattern_matches(event_name: str, pattern: str) -> bool:
    """
    Match an event name against a subscription pattern.

    >>> pattern_matches("listing_sold", "listing_*")
    True
    >>> pattern_matches("battle_completed", "*_completed")
    True
    >>> pattern_matches("battle_completed", "listing_*")
    False
    """
    if pattern == "*":
        return True
    if "*" not in pattern:
        return event_name == pattern

    parts = pattern.split("*")
    if not event_name.startswith(parts[0]) or not event_name.endswith(parts[-1]):
        return False
    if len(parts[0]) + len(parts[-1]) > len(event_name):
        return False

    cursor = len(parts[0])
    for middle in parts[1:-1]:
        if not middle:
            continue
        found = event_name.find(middle, cursor)
        if found == -1:
            return False
        cursor = found + len(middle)
    return cursor <= len(event_name) - len(parts[-1])
