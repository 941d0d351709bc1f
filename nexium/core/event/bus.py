"""
Nexium EventBus: async pub/sub with tiered listener execution.

Purpose
-------
Decouple the game service from whatever consumes its domain events
(dashboard broadcast, chat notifications, analytics). The game service only
publishes; delivery and ordering beyond one process are the consumer's
concern.

Responsibilities
----------------
- Register/unregister listeners on exact names or wildcard patterns.
- Execute listeners by priority tier:
  * CRITICAL / HIGH: sequential, awaited, timeout-protected
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks
- Isolate listener errors: one failing listener never blocks the others and
  never propagates into the publisher.

Design Decisions
----------------
- Instance-based, owned by the service container. Tests build their own.
- Listener timeouts come from ConfigManager (`core.event.timeout_seconds`).
- Background LOW tasks are tracked so shutdown and tests can `drain()`.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from nexium.core.config.manager import ConfigManager
from nexium.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
    pattern_matches,
)
from nexium.core.logging.logger import get_logger

logger = get_logger(__name__)


class EventBus:
    """
    Async event bus.

    Single event loop only; registry mutations happen between awaits.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("listing_sold", notify_seller, priority=ListenerPriority.HIGH)
    >>> await bus.publish("listing_sold", {"listing_id": "..."})
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._listeners: Dict[str, List[EventListener]] = defaultdict(list)
        self._background: Set[asyncio.Task[Any]] = set()
        self._published: Dict[str, int] = defaultdict(int)
        self._listener_errors = 0

        if timeout_seconds is not None:
            self._timeout = float(timeout_seconds)
        elif config_manager is not None:
            self._timeout = config_manager.get_float("core.event.timeout_seconds", 5.0)
        else:
            self._timeout = 5.0

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        try:
            signature = inspect.signature(callback)
        except (TypeError, ValueError):
            return
        if len(signature.parameters) != 1:
            name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(signature.parameters)} for '{name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe `callback` to an event name or wildcard pattern.

        Returns the listener identifier for `unsubscribe`. Registering the
        same identifier twice on one pattern is a no-op.
        """
        self._validate_callback_signature(callback)
        listener = EventListener.from_callback(event_name, callback, priority, identifier, once)

        bucket = self._listeners[event_name]
        if any(existing.identifier == listener.identifier for existing in bucket):
            logger.warning(
                "EventBus: duplicate listener ignored",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        bucket.append(listener)
        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": priority.name,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        bucket = self._listeners.get(event_name, [])
        remaining = [listener for listener in bucket if listener.identifier != identifier]
        removed = len(remaining) != len(bucket)
        if removed:
            self._listeners[event_name] = remaining
        return removed

    def clear(self) -> None:
        self._listeners.clear()

    def listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return sum(len(bucket) for bucket in self._listeners.values())
        return len(self._matching(event_name))

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    def _matching(self, event_name: str) -> List[EventListener]:
        matched: List[EventListener] = []
        for pattern, bucket in self._listeners.items():
            if pattern_matches(event_name, pattern):
                matched.extend(bucket)
        # stable sort keeps registration order within a tier
        matched.sort(key=lambda listener: listener.priority.value)
        return matched

    def _prune_once(self, listeners: List[EventListener]) -> None:
        once_ids = {listener.identifier for listener in listeners if listener.once}
        if not once_ids:
            return
        for pattern, bucket in list(self._listeners.items()):
            self._listeners[pattern] = [l for l in bucket if l.identifier not in once_ids]

    async def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Publish an event.

        Returns results of CRITICAL/HIGH/NORMAL listeners in execution order.
        A listener that raised or timed out contributes ``None``.
        """
        self._published[event_name] += 1
        listeners = self._matching(event_name)
        self._prune_once(listeners)

        if not listeners:
            logger.debug("EventBus: no listeners for event", extra={"event_name": event_name})
            return []

        logger.debug(
            "EventBus: publishing event",
            extra={"event_name": event_name, "listener_count": len(listeners)},
        )

        results: List[Any] = []
        sequential = [l for l in listeners if l.priority in (ListenerPriority.CRITICAL, ListenerPriority.HIGH)]
        concurrent = [l for l in listeners if l.priority is ListenerPriority.NORMAL]
        background = [l for l in listeners if l.priority is ListenerPriority.LOW]

        for listener in sequential:
            results.append(await self._run(event_name, listener, data, self._timeout))

        if concurrent:
            results.extend(
                await asyncio.gather(*(self._run(event_name, l, data, None) for l in concurrent))
            )

        for listener in background:
            task = asyncio.create_task(self._run(event_name, listener, data, None))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

        return results

    async def _run(
        self,
        event_name: str,
        listener: EventListener,
        data: EventPayload,
        timeout: Optional[float],
    ) -> Any:
        try:
            result = listener.callback(data)
            if inspect.isawaitable(result):
                if timeout is not None and timeout > 0:
                    result = await asyncio.wait_for(result, timeout=timeout)
                else:
                    result = await result
            return result
        except asyncio.TimeoutError:
            self._listener_errors += 1
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "timeout_seconds": timeout,
                },
            )
        except Exception as exc:
            self._listener_errors += 1
            logger.error(
                "EventBus listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
        return None

    async def drain(self) -> None:
        """Wait for every outstanding LOW-priority task."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def stats(self) -> Dict[str, Any]:
        return {
            "listeners": self.listener_count(),
            "published": dict(self._published),
            "listener_errors": self._listener_errors,
            "background_tasks": len(self._background),
        }
