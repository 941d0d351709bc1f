"""
Base domain model classes for Nexium.

Purpose
-------
Foundational abstractions for the simulation's entities: identity-based
equality and a per-entity buffer of domain events that the orchestration
layer drains and publishes once the surrounding transaction commits.

Non-Responsibilities
--------------------
- Persistence (repositories map rows to entities)
- Publishing (the game service hands drained events to the EventBus)

Usage Example
-------------
>>> class Probe(Entity):
...     def __init__(self, probe_id: int) -> None:
...         super().__init__(probe_id)
...
...     def land(self) -> None:
...         self.add_domain_event("probe_landed", {"probe_id": self.id})
...
>>> probe = Probe(7)
>>> probe.land()
>>> [event.event_name for event in probe.pull_domain_events()]
['probe_landed']
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, TypeVar, Union

IdT = TypeVar("IdT")


@dataclass(frozen=True)
class DomainEvent:
    """
    A state change other parts of the system may react to.

    Attributes
    ----------
    event_name : str
        One of the `GameEvent` values, e.g. ``"listing_sold"``
    payload : Dict[str, Any]
        JSON-friendly snapshot of the entity involved
    occurred_at : datetime
        When the change happened (UTC)
    """

    event_name: str
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Entity(ABC, Generic[IdT]):
    """
    Base class for entities with identity.

    Two entities of the same class with the same id are the same entity,
    whatever their other attributes.
    """

    def __init__(self, entity_id: IdT) -> None:
        self._id = entity_id
        self._domain_events: List[DomainEvent] = []

    @property
    def id(self) -> IdT:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, self.id))

    def add_domain_event(self, event_name: Union[str, Enum], payload: Dict[str, Any]) -> None:
        name = event_name.value if isinstance(event_name, Enum) else event_name
        self._domain_events.append(DomainEvent(event_name=name, payload=payload))

    def pull_domain_events(self) -> List[DomainEvent]:
        """Return buffered events and clear the buffer."""
        events, self._domain_events = self._domain_events, []
        return events

    @property
    def has_pending_events(self) -> bool:
        return bool(self._domain_events)
