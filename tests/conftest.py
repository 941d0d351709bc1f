"""
Pytest Configuration and Fixtures for Nexium Frontier Tests
===========================================================

Purpose
-------
Shared fixtures for the Nexium test suite: configuration, scripted
randomness, an in-memory world for engine tests, a file-backed SQLite
database for integration tests and a PostgreSQL testcontainer for the
tests marked ``database``.

Responsibilities
----------------
- Game configuration built from dicts (no YAML on disk needed)
- RandomSource that replays queued values, then falls back to a seed
- Manual clock so energy regeneration, cooldowns and expiry are exact
- Domain model factories for test data
- Event recording for post-commit publication checks

Architecture Notes
------------------
- Unit tests never touch a database; engines run against `InMemoryWorld`.
- Integration tests get a fresh SQLite file per test (aiosqlite).
- The PostgreSQL container is started lazily, once per session, and the
  tests that need it are skipped when Docker is unavailable.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Callable, Dict, Generator, List, Optional, Sequence, Tuple

import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from nexium.core.config.manager import ConfigManager
from nexium.core.database.service import DatabaseService
from nexium.core.event.bus import EventBus
from nexium.core.event.types import GameEvent
from nexium.core.logging.logger import get_logger
from nexium.domain.models.market import MarketListing
from nexium.domain.models.player import PlayerState
from nexium.domain.models.sector import Coordinate, Sector, SectorDraft
from nexium.domain.models.ship import ShipState
from nexium.modules.game.service import GameService
from nexium.modules.shared.random_source import RandomSource

logger = get_logger(__name__)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("LOG_LEVEL", "DEBUG")


# ============================================================================
# TEST DOUBLES
# ============================================================================


class ScriptedRandom(RandomSource):
    """
    RandomSource that serves queued values first.

    Each draw kind has its own queue; an empty queue falls back to the
    seeded stream, so tests only script the draws they care about.
    """

    def __init__(
        self,
        *,
        randoms: Sequence[float] = (),
        randints: Sequence[int] = (),
        seed: int = 1234,
    ) -> None:
        super().__init__(seed)
        self.randoms: List[float] = list(randoms)
        self.randints: List[int] = list(randints)

    def random(self) -> float:
        if self.randoms:
            return self.randoms.pop(0)
        return super().random()

    def randint(self, low: int, high: int) -> int:
        if self.randints:
            value = self.randints.pop(0)
            assert low <= value <= high, f"scripted {value} outside [{low}, {high}]"
            return value
        return super().randint(low, high)


class InMemoryWorld:
    """WorldRepository backed by a dict, for engine tests."""

    def __init__(self) -> None:
        self.sectors: Dict[str, Sector] = {}
        self.visits: List[Tuple[int, datetime]] = []
        self._next_id = 1

    def add(self, draft: SectorDraft, **kwargs: Any) -> Sector:
        sector = Sector(
            self._next_id,
            draft.coordinate,
            draft.name,
            draft.sector_type,
            draft.difficulty,
            draft.resources,
            draft.hazards,
            **kwargs,
        )
        self._next_id += 1
        self.sectors[draft.coordinate.key] = sector
        return sector

    async def get_sector_by_coordinate(self, coordinate: Coordinate) -> Optional[Sector]:
        return self.sectors.get(coordinate.key)

    async def create_sector_if_absent(
        self,
        draft: SectorDraft,
        discovered_by: Optional[int] = None,
        at: Optional[datetime] = None,
    ) -> Tuple[Sector, bool]:
        existing = self.sectors.get(draft.coordinate.key)
        if existing is not None:
            return existing, False
        sector = self.add(draft)
        if discovered_by is not None and at is not None:
            sector.mark_discovered(discovered_by, at)
        return sector, True

    async def record_visit(self, sector_id: int, at: datetime) -> None:
        self.visits.append((sector_id, at))


class ManualClock:
    """Callable clock the tests move by hand."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class EventRecorder:
    """Collects (event_name, payload) pairs for every GameEvent."""

    def __init__(self, bus: EventBus) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        for event in GameEvent:
            bus.subscribe(event.value, self._listener(event.value), identifier=f"recorder:{event.value}")

    def _listener(self, name: str) -> Callable[[Dict[str, Any]], None]:
        def record(payload: Dict[str, Any]) -> None:
            self.events.append((name, payload))

        return record

    def named(self, name: str) -> List[Dict[str, Any]]:
        return [payload for event_name, payload in self.events if event_name == name]

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.events]


# ============================================================================
# CORE FIXTURES
# ============================================================================


@pytest.fixture
def config_manager() -> ConfigManager:
    """Built-in defaults only; modules override this fixture to rebalance."""
    return ConfigManager.from_dict({})


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom(seed=1234)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def world() -> InMemoryWorld:
    return InMemoryWorld()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(timeout_seconds=1.0)


@pytest.fixture
def recorder(event_bus: EventBus) -> EventRecorder:
    return EventRecorder(event_bus)


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def make_ship() -> Callable[..., ShipState]:
    def factory(**overrides: Any) -> ShipState:
        values: Dict[str, Any] = {
            "id": 1,
            "owner_id": 1,
            "name": "Test Explorer",
            "hull": 100,
            "max_hull": 100,
            "shields": 50,
            "max_shields": 50,
            "attack": 20,
            "defense": 15,
            "speed": 10,
            "fuel": 100,
            "max_fuel": 100,
        }
        values.update(overrides)
        return ShipState(**values)

    return factory


@pytest.fixture
def make_player() -> Callable[..., PlayerState]:
    def factory(**overrides: Any) -> PlayerState:
        values: Dict[str, Any] = {
            "id": 1,
            "external_id": "ext-1",
            "username": "pilot",
            "currency": Decimal("1000.00"),
            "energy": 100,
            "max_energy": 100,
            "last_energy_restore": NOW,
        }
        values.update(overrides)
        return PlayerState(**values)

    return factory


@pytest.fixture
def make_listing() -> Callable[..., MarketListing]:
    def factory(
        listing_id: str = "listing-1",
        *,
        seller_id: int = 2,
        item_id: int = 1,
        quantity: int = 1,
        price: str = "10.00",
        created_at: datetime = NOW,
        lifetime: timedelta = timedelta(days=7),
        is_active: bool = True,
    ) -> MarketListing:
        price_per_unit = Decimal(price)
        return MarketListing(
            listing_id=listing_id,
            seller_id=seller_id,
            item_id=item_id,
            quantity=quantity,
            price_per_unit=price_per_unit,
            total_price=price_per_unit * quantity,
            created_at=created_at,
            expires_at=created_at + lifetime,
            is_active=is_active,
            item_name=f"item-{item_id}",
        )

    return factory


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[DatabaseService, None]:
    """
    Fresh SQLite database per test.

    A file (not :memory:) so every pooled connection sees the same data.
    """
    service = DatabaseService(f"sqlite+aiosqlite:///{tmp_path / 'nexium.db'}")
    await service.initialize()
    await service.create_schema()
    yield service
    await service.shutdown()


@pytest_asyncio.fixture
async def game_service(
    database: DatabaseService,
    config_manager: ConfigManager,
    event_bus: EventBus,
    rng: ScriptedRandom,
    clock: ManualClock,
) -> GameService:
    return GameService(
        database,
        config_manager,
        event_bus,
        get_logger("tests.game_service"),
        rng=rng,
        clock=clock,
    )


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start a PostgreSQL testcontainer for the ``database`` tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:16-alpine", driver="asyncpg")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"Docker unavailable for PostgreSQL testcontainer: {exc}")

    logger.info("PostgreSQL testcontainer started")
    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def postgres_database(postgres_container: PostgresContainer) -> AsyncGenerator[DatabaseService, None]:
    service = DatabaseService(postgres_container.get_connection_url())
    await service.initialize()
    await service.drop_schema()
    await service.create_schema()
    yield service
    await service.shutdown()
