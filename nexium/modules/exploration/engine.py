"""
Exploration Engine
==================

Purpose
-------
Resolves the three movement actions against the shared universe:

- `explore`: visit a freshly generated coordinate, roll for success, grant
  experience and (on success) currency plus a flavour resource find.
- `scan`: chart three fresh coordinates at once and report partial
  information (first resource, first hazard) for each.
- `jump`: travel to a named coordinate, paying energy by distance and fuel.

Design Notes
------------
- Computation only. The engine reads PlayerState/ShipState and returns
  outcomes carrying `PlayerDelta`/`ShipDelta`; the orchestration layer
  debits energy and persists deltas inside one transaction.
- The only side effects are the injected WorldRepository's idempotent
  get-or-create and visit bookkeeping. Repository errors propagate as
  WorldAccessError and the surrounding transaction rolls back.
- Every roll goes through the generator's RandomSource.

Explore draw order: coordinates, (sector draft if new), success roll,
experience, then on success: resource choice + amount, currency.

Config Keys (defaults in parentheses)
-------------------------------------
exploration.energy_cost (10), exploration.scan_energy_cost (5),
exploration.scan_sector_count (3), exploration.base_chance (0.7),
exploration.level_bonus (0.02), exploration.difficulty_penalty (0.05),
exploration.min_chance (0.1), exploration.max_chance (0.95),
exploration.experience_range ([10, 29]), exploration.currency_range
([25, 124]), exploration.resource_amount_range ([10, 59]),
exploration.experience_per_level (100),
jump.success_chance (0.9), jump.min_energy_cost (15),
jump.distance_per_energy (10), jump.fuel_required (20), jump.fuel_cost (20),
jump.failure_fuel_cost (10), jump.failure_hull_damage (10)
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from nexium.core.config.manager import ConfigManager
from nexium.core.logging.logger import get_logger
from nexium.domain.exceptions import InsufficientResourcesError
from nexium.domain.models.exploration import (
    ExplorationOutcome,
    JumpOutcome,
    ScanDetection,
    ScanOutcome,
)
from nexium.domain.models.player import PlayerDelta, PlayerState
from nexium.domain.models.sector import Coordinate, ResourceKind, Sector
from nexium.domain.models.ship import ShipDelta, ShipState
from nexium.modules.exploration.narratives import describe_exploration
from nexium.modules.shared.ports import WorldRepository
from nexium.modules.universe.generator import UniverseGenerator

logger = get_logger(__name__)


class ExplorationEngine:
    """
    Exploration, scanning and hyperspace jumps.

    Public Methods
    --------------
    - success_chance(ship_level, difficulty) -> float
    - explore(player, ship, world, now) -> ExplorationOutcome
    - scan(player, ship, world) -> ScanOutcome
    - jump_cost(target) -> int
    - jump(player, ship, target, world, now) -> JumpOutcome
    """

    def __init__(self, config_manager: ConfigManager, generator: UniverseGenerator) -> None:
        self._config = config_manager
        self._generator = generator

        self.energy_cost = config_manager.get_int("exploration.energy_cost", 10)
        self.scan_energy_cost = config_manager.get_int("exploration.scan_energy_cost", 5)
        self.scan_sector_count = config_manager.get_int("exploration.scan_sector_count", 3)

        self.base_chance = config_manager.get_float("exploration.base_chance", 0.7)
        self.level_bonus = config_manager.get_float("exploration.level_bonus", 0.02)
        self.difficulty_penalty = config_manager.get_float("exploration.difficulty_penalty", 0.05)
        self.min_chance = config_manager.get_float("exploration.min_chance", 0.1)
        self.max_chance = config_manager.get_float("exploration.max_chance", 0.95)

        self.experience_range = config_manager.get_range("exploration.experience_range", (10, 29))
        self.currency_range = config_manager.get_range("exploration.currency_range", (25, 124))
        self.resource_amount_range = config_manager.get_range(
            "exploration.resource_amount_range", (10, 59)
        )
        self.experience_per_level = config_manager.get_int("exploration.experience_per_level", 100)

        self.jump_success_chance = config_manager.get_float("jump.success_chance", 0.9)
        self.jump_min_energy_cost = config_manager.get_int("jump.min_energy_cost", 15)
        self.jump_distance_per_energy = config_manager.get_int("jump.distance_per_energy", 10)
        self.jump_fuel_required = config_manager.get_int("jump.fuel_required", 20)
        self.jump_fuel_cost = config_manager.get_int("jump.fuel_cost", 20)
        self.jump_failure_fuel_cost = config_manager.get_int("jump.failure_fuel_cost", 10)
        self.jump_failure_hull_damage = config_manager.get_int("jump.failure_hull_damage", 10)

        logger.debug(
            "ExplorationEngine initialized",
            extra={
                "energy_cost": self.energy_cost,
                "scan_energy_cost": self.scan_energy_cost,
                "base_chance": self.base_chance,
            },
        )

    @property
    def generator(self) -> UniverseGenerator:
        return self._generator

    # ========================================================================
    # EXPLORE
    # ========================================================================

    def success_chance(self, ship_level: int, difficulty: int) -> float:
        raw = self.base_chance + self.level_bonus * ship_level - self.difficulty_penalty * difficulty
        return max(self.min_chance, min(self.max_chance, raw))

    async def explore(
        self,
        player: PlayerState,
        ship: ShipState,
        world: WorldRepository,
        now: datetime,
    ) -> ExplorationOutcome:
        rng = self._generator.rng
        sector, created = await self._chart(world, self._generator.generate_coordinates(), player.id, now)
        await world.record_visit(sector.id, now)
        sector.record_visit(now)

        chance = self.success_chance(ship.level, sector.difficulty)
        success = rng.chance(chance)
        experience = rng.randint(*self.experience_range)

        resource: Optional[ResourceKind] = None
        resource_amount = 0
        currency = 0
        if success:
            kinds: List[ResourceKind] = list(sector.resources)
            if kinds:
                resource = rng.choice(kinds)
                resource_amount = rng.randint(*self.resource_amount_range)
            currency = rng.randint(*self.currency_range)

        # at most one level per explore, no matter how much experience piles up
        leveled_up = ship.experience + experience >= ship.level * self.experience_per_level

        player_delta = PlayerDelta(
            currency=Decimal(currency),
            sectors_explored=1 if success else 0,
            active_at=now,
        )
        ship_delta = ShipDelta(experience=experience, levels=1 if leveled_up else 0)

        outcome = ExplorationOutcome(
            success=success,
            sector=sector,
            success_chance=chance,
            energy_cost=self.energy_cost,
            experience_gained=experience,
            leveled_up=leveled_up,
            currency_reward=currency,
            description=describe_exploration(sector, success, found_resource=resource is not None),
            discovery=created,
            resource_found=resource,
            resource_amount=resource_amount,
            player_delta=player_delta,
            ship_delta=ship_delta,
        )

        logger.info(
            "Exploration resolved",
            extra={
                "player_id": player.id,
                "ship_id": ship.id,
                "coordinates": sector.coordinate.key,
                "success": success,
                "success_chance": round(chance, 4),
                "experience": experience,
                "currency": currency,
                "discovery": created,
            },
        )
        return outcome

    # ========================================================================
    # SCAN
    # ========================================================================

    async def scan(self, player: PlayerState, ship: ShipState, world: WorldRepository) -> ScanOutcome:
        """
        Chart `scan_sector_count` fresh coordinates.

        Reports only the first resource and first hazard of each sector.
        Scanned sectors are created without a discoverer and are not visited.
        """
        detections: List[ScanDetection] = []
        for _ in range(self.scan_sector_count):
            sector, _created = await self._chart(world, self._generator.generate_coordinates(), None, None)
            detections.append(
                ScanDetection(
                    sector=sector,
                    resource=sector.first_resource(),
                    hazard=sector.first_hazard(),
                )
            )

        outcome = ScanOutcome(detections=tuple(detections), energy_cost=self.scan_energy_cost)
        logger.info(
            "Scan resolved",
            extra={"player_id": player.id, "ship_id": ship.id, **outcome.snapshot()},
        )
        return outcome

    # ========================================================================
    # JUMP
    # ========================================================================

    @staticmethod
    def jump_distance(target: Coordinate) -> float:
        """Distance from the origin in the galactic plane; z does not count."""
        return math.hypot(target.x, target.y)

    def jump_cost(self, target: Coordinate) -> int:
        distance = self.jump_distance(target)
        return max(self.jump_min_energy_cost, math.floor(distance / self.jump_distance_per_energy))

    async def jump(
        self,
        player: PlayerState,
        ship: ShipState,
        target: Coordinate,
        world: WorldRepository,
        now: datetime,
    ) -> JumpOutcome:
        """
        Hyperspace jump to `target`.

        The caller has already checked energy against `jump_cost(target)`.
        A failed jump still burns half the energy, some fuel and some hull,
        and does not count as a visit.
        """
        if ship.fuel < self.jump_fuel_required:
            raise InsufficientResourcesError("fuel", self.jump_fuel_required, ship.fuel)

        cost = self.jump_cost(target)
        success = self._generator.rng.chance(self.jump_success_chance)
        sector, created = await self._chart(world, target, player.id if success else None, now)

        if success:
            await world.record_visit(sector.id, now)
            sector.record_visit(now)
            energy_spent = cost
            fuel_spent = self.jump_fuel_cost
            hull_damage = 0
        else:
            energy_spent = min(player.energy, cost // 2)
            fuel_spent = min(ship.fuel, self.jump_failure_fuel_cost)
            hull_damage = min(ship.hull, self.jump_failure_hull_damage)

        outcome = JumpOutcome(
            success=success,
            sector=sector,
            distance=self.jump_distance(target),
            energy_cost=cost,
            energy_spent=energy_spent,
            fuel_spent=fuel_spent,
            hull_damage=hull_damage,
            discovery=created and success,
            player_delta=PlayerDelta(active_at=now),
            ship_delta=ShipDelta(fuel=-fuel_spent, hull=-hull_damage),
        )

        logger.info(
            "Jump resolved",
            extra={"player_id": player.id, "ship_id": ship.id, **outcome.snapshot()},
        )
        return outcome

    # ========================================================================
    # INTERNALS
    # ========================================================================

    async def _chart(
        self,
        world: WorldRepository,
        coordinate: Coordinate,
        discovered_by: Optional[int],
        at: Optional[datetime],
    ) -> Tuple[Sector, bool]:
        """Fetch the sector at `coordinate`, drafting and inserting it if absent."""
        sector = await world.get_sector_by_coordinate(coordinate)
        if sector is not None:
            return sector, False
        draft = self._generator.generate_sector(coordinate)
        return await world.create_sector_if_absent(draft, discovered_by=discovered_by, at=at)
