"""
Base Service Foundation

Purpose
-------
Common plumbing for services that orchestrate engines and repositories:
config access, structured operation logging and publishing of domain
events once a transaction has committed.

Design Notes
------------
What this class does NOT do:
- Manage database transactions (DatabaseService.transaction does)
- Contain game rules (the engines do)

Usage
-----
    class GameService(BaseService):
        def __init__(self, database, config_manager, event_bus, logger):
            super().__init__(config_manager, event_bus, logger)
            self.db = database
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from nexium.core.exceptions import ConfigurationError
from nexium.domain.exceptions import ValidationError
from nexium.domain.models.base import DomainEvent, Entity

if TYPE_CHECKING:
    from logging import Logger

    from nexium.core.config.manager import ConfigManager
    from nexium.core.event.bus import EventBus


class BaseService:
    """
    Base class for orchestration services.

    Args:
        config_manager: Game configuration
        event_bus: Event bus for domain events
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(self, key: str, default: Optional[Any] = None, required: bool = False) -> Any:
        """
        Retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(key, f"Required configuration key '{key}' is missing")
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._events.publish(event_type, {**data, **(context or {})})

    async def publish_domain_events(self, entities: Iterable[Optional[Entity[Any]]]) -> List[DomainEvent]:
        """
        Drain and publish the buffered events of `entities`, in order.

        Call only after the transaction that produced them has committed.
        """
        published: List[DomainEvent] = []
        for entity in entities:
            if entity is None:
                continue
            for event in entity.pull_domain_events():
                await self._events.publish(
                    event.event_name,
                    {**event.payload, "occurred_at": event.occurred_at.isoformat()},
                )
                published.append(event)
        return published

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    @staticmethod
    def validate_positive_int(value: Any, name: str) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(name, f"{name} must be a positive integer, got {value!r}")
