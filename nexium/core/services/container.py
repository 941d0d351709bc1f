"""
Service Container
=================

Purpose
-------
Build and own every long-lived object of one process: game configuration,
database, event bus, shared RandomSource, player locks, the GameService
and the CommandRouter in front of it.

Responsibilities
----------------
- Construct dependencies in order and inject them (no module singletons)
- Manage lifecycle (initialize, shutdown)
- Record per-component init timings for diagnostics

Non-Responsibilities
--------------------
- Game rules (engines)
- Transport (chat bot or HTTP handlers sit outside and call the router)

Usage
-----
    container = ServiceContainer(ConfigManager.from_directory())
    await container.initialize()
    result = await container.router.dispatch("explore", player_id=1)
    await container.shutdown()
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional, TypeVar

from nexium.core.concurrency.locks import PlayerLockManager
from nexium.core.config.config import Config
from nexium.core.config.manager import ConfigManager
from nexium.core.database.service import DatabaseService
from nexium.core.event.bus import EventBus
from nexium.core.logging.logger import get_logger, get_queue_stats
from nexium.modules.game.commands import CommandRouter
from nexium.modules.game.service import GameService
from nexium.modules.shared.random_source import RandomSource

T = TypeVar("T")


class ServiceContainer:
    """
    Dependency container for one process.

    Args:
        config_manager: Game balance configuration
        database: Pre-built DatabaseService (tests); built from Config otherwise
        event_bus: Pre-built EventBus; built from config otherwise
        rng: Shared RandomSource; seeded from Config.RNG_SEED otherwise
        create_schema: Create missing tables during initialize()
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        *,
        database: Optional[DatabaseService] = None,
        event_bus: Optional[EventBus] = None,
        rng: Optional[RandomSource] = None,
        create_schema: bool = False,
    ) -> None:
        self._config_manager = config_manager
        self._database = database
        self._event_bus = event_bus
        self._rng = rng
        self._create_schema = create_schema
        self._logger = get_logger(__name__)

        self._locks: Optional[PlayerLockManager] = None
        self._game: Optional[GameService] = None
        self._router: Optional[CommandRouter] = None

        self._initialized = False
        self._init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            database = self._database or self._timed("database", DatabaseService)
            await database.initialize()
            if self._create_schema:
                await database.create_schema()
            self._database = database

            self._event_bus = self._event_bus or self._timed(
                "event_bus", lambda: EventBus(self._config_manager)
            )
            self._rng = self._rng or self._timed("rng", lambda: RandomSource(Config.RNG_SEED))
            self._locks = self._timed("locks", lambda: PlayerLockManager(self._config_manager))
            self._game = self._timed(
                "game",
                lambda: GameService(
                    database,
                    self._config_manager,
                    self.event_bus,
                    get_logger(f"{GameService.__module__}.{GameService.__name__}"),
                    rng=self.rng,
                    locks=self._locks,
                ),
            )
            self._router = self._timed("router", lambda: CommandRouter(self.game))

            self._initialized = True
            self._init_end = time.perf_counter()
            self._logger.info(
                "Service container initialized successfully",
                extra={
                    "total_duration": round(self._init_end - self._init_start, 3),
                    "components": len(self._init_times),
                    "seeded": self.rng.seed is not None,
                },
            )
        except Exception as e:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

    def _timed(self, name: str, factory: Callable[[], T]) -> T:
        start = time.perf_counter()
        try:
            instance = factory()
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise
        duration = time.perf_counter() - start
        self._init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    async def shutdown(self) -> None:
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")
        if self._event_bus is not None:
            await self._event_bus.drain()
        if self._database is not None:
            await self._database.shutdown()
        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, Any]:
        database_ok = await self._database.health_check() if self._database and self._initialized else False
        return {
            "initialized": self._initialized,
            "database": database_ok,
            "component_count": len(self._init_times),
            "log_queue": get_queue_stats(),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
        }

    # ========================================================================
    # Accessors
    # ========================================================================

    def _require(self, value: Optional[T]) -> T:
        if not self._initialized or value is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return value

    @property
    def config(self) -> ConfigManager:
        return self._config_manager

    @property
    def database(self) -> DatabaseService:
        return self._require(self._database)

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._event_bus

    @property
    def rng(self) -> RandomSource:
        if self._rng is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._rng

    @property
    def game(self) -> GameService:
        if self._game is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._game

    @property
    def router(self) -> CommandRouter:
        return self._require(self._router)

    @property
    def is_initialized(self) -> bool:
        return self._initialized
