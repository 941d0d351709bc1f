"""
Procedural universe generation.

Purpose
-------
Pure functions that turn RandomSource draws into coordinates and sector
drafts. Nothing here touches storage; the world repository decides whether
a draft becomes a row.

Draw Order
----------
Fixed so that a seed reproduces the same universe:

- `generate_coordinates`: x, y, z
- `generate_sector`: prefix, suffix, number roll (+ number), type,
  difficulty, resource count, resource kinds, one abundance per kind,
  hazard count, hazard kinds, one intensity per kind
"""

from __future__ import annotations

import math
from typing import Dict

from nexium.core.logging.logger import get_logger
from nexium.domain.models.sector import (
    Coordinate,
    HazardKind,
    ResourceKind,
    SectorDraft,
    SectorType,
)
from nexium.modules.shared.random_source import RandomSource
from nexium.modules.universe import constants

logger = get_logger(__name__)


class UniverseGenerator:
    """Stateless apart from the injected RandomSource."""

    def __init__(self, rng: RandomSource) -> None:
        self.rng = rng

    # ------------------------------------------------------------------ #
    # Coordinates
    # ------------------------------------------------------------------ #

    def generate_coordinates(self) -> Coordinate:
        x = self.rng.randint(-Coordinate.XY_LIMIT, Coordinate.XY_LIMIT)
        y = self.rng.randint(-Coordinate.XY_LIMIT, Coordinate.XY_LIMIT)
        z = self.rng.randint(-Coordinate.Z_LIMIT, Coordinate.Z_LIMIT)
        return Coordinate(x, y, z)

    def nearby_coordinate(self, base: Coordinate, max_distance: int = 50) -> Coordinate:
        """Offset each axis by up to `max_distance`, clamped to the universe bounds."""
        if max_distance < 0:
            raise ValueError("max_distance must be non-negative")
        return Coordinate.clamped(
            base.x + self.rng.randint(-max_distance, max_distance),
            base.y + self.rng.randint(-max_distance, max_distance),
            base.z + self.rng.randint(-max_distance, max_distance),
        )

    @staticmethod
    def distance(a: Coordinate, b: Coordinate) -> float:
        return math.sqrt((b.x - a.x) ** 2 + (b.y - a.y) ** 2 + (b.z - a.z) ** 2)

    # ------------------------------------------------------------------ #
    # Sector drafts
    # ------------------------------------------------------------------ #

    def generate_name(self) -> str:
        prefix = self.rng.choice(constants.SECTOR_PREFIXES)
        suffix = self.rng.choice(constants.SECTOR_SUFFIXES)
        if self.rng.chance(constants.NAME_NUMBER_CHANCE):
            number = self.rng.randint(*constants.NAME_NUMBER_RANGE)
            return f"{prefix} {suffix} {number}"
        return f"{prefix} {suffix}"

    def generate_resources(self) -> Dict[ResourceKind, int]:
        count = self.rng.randint(0, constants.MAX_RESOURCES)
        kinds = self.rng.sample(constants.RESOURCE_KINDS, count)
        return {kind: self.rng.randint(*constants.RESOURCE_ABUNDANCE_RANGE) for kind in kinds}

    def generate_hazards(self) -> Dict[HazardKind, int]:
        count = self.rng.randint(0, constants.MAX_HAZARDS)
        kinds = self.rng.sample(constants.HAZARD_KINDS, count)
        return {kind: self.rng.randint(*constants.HAZARD_INTENSITY_RANGE) for kind in kinds}

    def generate_sector(self, coordinate: Coordinate) -> SectorDraft:
        name = self.generate_name()
        sector_type: SectorType = self.rng.choice(constants.SECTOR_TYPES)
        difficulty = self.rng.randint(*constants.DIFFICULTY_RANGE)
        resources = self.generate_resources()
        hazards = self.generate_hazards()

        logger.debug(
            "Sector drafted",
            extra={
                "coordinates": coordinate.key,
                "sector_type": sector_type.value,
                "difficulty": difficulty,
                "resource_count": len(resources),
                "hazard_count": len(hazards),
            },
        )
        return SectorDraft(
            coordinate=coordinate,
            name=name,
            sector_type=sector_type,
            difficulty=difficulty,
            resources=resources,
            hazards=hazards,
        )

    def encounter_description(self, sector_type: SectorType) -> str:
        return self.rng.choice(constants.ENCOUNTERS.get(sector_type, constants.DEFAULT_ENCOUNTERS))
