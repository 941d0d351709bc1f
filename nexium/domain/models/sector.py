"""
Sector domain model.

A Sector is a coordinate-addressed region of the procedurally generated
universe. The coordinate is its natural key: at most one Sector exists per
coordinate. Once created, name/type/difficulty/resources/hazards never change;
only visit metadata (`visit_count`, `last_visited`) mutates.

Resource and hazard maps are keyed by closed enums and keep insertion order,
which is what "first detected" means for scans.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from nexium.core.event.types import GameEvent
from nexium.domain.exceptions import InvariantViolation, ValidationError
from nexium.domain.models.base import Entity

COORDINATE_PATTERN = re.compile(r"^X(-?\d+):Y(-?\d+):Z(-?\d+)$")

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


class SectorType(str, Enum):
    ASTEROID_FIELD = "asteroid_field"
    GAS_GIANT = "gas_giant"
    PLANETARY_SYSTEM = "planetary_system"
    NEBULA = "nebula"
    BINARY_STAR = "binary_star"
    BLACK_HOLE = "black_hole"
    ANCIENT_RUINS = "ancient_ruins"
    SPACE_STATION = "space_station"
    WORMHOLE = "wormhole"
    QUANTUM_STORM = "quantum_storm"
    DARK_MATTER_CLOUD = "dark_matter_cloud"
    PULSAR_SYSTEM = "pulsar_system"
    NEUTRON_STAR = "neutron_star"
    RED_GIANT = "red_giant"
    WHITE_DWARF = "white_dwarf"
    PROTOSTAR = "protostar"
    PLANETARY_RING = "planetary_ring"
    COMET_FIELD = "comet_field"
    MAGNETIC_ANOMALY = "magnetic_anomaly"
    TIME_DISTORTION = "time_distortion"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class ResourceKind(str, Enum):
    IRON = "iron"
    TITANIUM = "titanium"
    PLATINUM = "platinum"
    NEXIUM_CRYSTALS = "nexium_crystals"
    DARK_MATTER = "dark_matter"
    QUANTUM_ENERGY = "quantum_energy"
    COSMIC_DUST = "cosmic_dust"
    HELIUM_3 = "helium_3"
    DEUTERIUM = "deuterium"
    TRITIUM = "tritium"
    RARE_EARTH_METALS = "rare_earth_metals"
    EXOTIC_MATTER = "exotic_matter"
    ANTIMATTER = "antimatter"
    ZERO_POINT_ENERGY = "zero_point_energy"
    CRYSTALLINE_MATRIX = "crystalline_matrix"
    BIO_NEURAL_GEL = "bio_neural_gel"
    PHOTONIC_MATTER = "photonic_matter"
    TACHYON_PARTICLES = "tachyon_particles"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class HazardKind(str, Enum):
    RADIATION = "radiation"
    GRAVITY_WELLS = "gravity_wells"
    PLASMA_STORMS = "plasma_storms"
    SPACE_PIRATES = "space_pirates"
    TEMPORAL_ANOMALIES = "temporal_anomalies"
    ION_STORMS = "ion_storms"
    SOLAR_FLARES = "solar_flares"
    MAGNETIC_INTERFERENCE = "magnetic_interference"
    QUANTUM_FLUCTUATIONS = "quantum_fluctuations"
    GRAVITY_DISTORTIONS = "gravity_distortions"
    ENERGY_VAMPIRES = "energy_vampires"
    SENTIENT_GAS_CLOUDS = "sentient_gas_clouds"
    DIMENSIONAL_RIFTS = "dimensional_rifts"
    NULL_SPACE_POCKETS = "null_space_pockets"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


@dataclass(frozen=True, order=True)
class Coordinate:
    """
    A point in the bounded universe grid.

    x, y in [-1000, 1000]; z in [-100, 100]. Serialized canonically as
    ``X{x}:Y{y}:Z{z}``, which is the Sector's unique key.
    """

    x: int
    y: int
    z: int

    XY_LIMIT = 1000
    Z_LIMIT = 100

    def __post_init__(self) -> None:
        if not self.in_bounds(self.x, self.y, self.z):
            raise ValidationError(
                "coordinates",
                f"{self.x},{self.y},{self.z} is outside the charted universe",
            )

    @classmethod
    def in_bounds(cls, x: int, y: int, z: int) -> bool:
        return abs(x) <= cls.XY_LIMIT and abs(y) <= cls.XY_LIMIT and abs(z) <= cls.Z_LIMIT

    @classmethod
    def clamped(cls, x: int, y: int, z: int) -> "Coordinate":
        return cls(
            max(-cls.XY_LIMIT, min(cls.XY_LIMIT, x)),
            max(-cls.XY_LIMIT, min(cls.XY_LIMIT, y)),
            max(-cls.Z_LIMIT, min(cls.Z_LIMIT, z)),
        )

    @classmethod
    def parse(cls, raw: str) -> "Coordinate":
        """
        Parse the canonical form, e.g. ``"X-127:Y495:Z3"``.

        Raises ValidationError for anything else, including out-of-bounds
        values.
        """
        match = COORDINATE_PATTERN.match(raw.strip()) if raw else None
        if match is None:
            raise ValidationError("coordinates", f"expected X<int>:Y<int>:Z<int>, got {raw!r}")
        return cls(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    @property
    def key(self) -> str:
        return f"X{self.x}:Y{self.y}:Z{self.z}"

    def __str__(self) -> str:
        return self.key


ORIGIN = Coordinate(0, 0, 0)


@dataclass(frozen=True)
class SectorDraft:
    """Generated attributes of a sector that does not exist yet."""

    coordinate: Coordinate
    name: str
    sector_type: SectorType
    difficulty: int
    resources: Mapping[ResourceKind, int] = field(default_factory=dict, hash=False)
    hazards: Mapping[HazardKind, int] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not MIN_DIFFICULTY <= self.difficulty <= MAX_DIFFICULTY:
            raise InvariantViolation(f"difficulty {self.difficulty} out of range", field="difficulty")
        if any(amount <= 0 for amount in self.resources.values()):
            raise InvariantViolation("resource abundance must be positive", field="resources")
        if any(intensity <= 0 for intensity in self.hazards.values()):
            raise InvariantViolation("hazard intensity must be positive", field="hazards")


class Sector(Entity[int]):
    """A persisted sector. Only visit metadata is mutable."""

    def __init__(
        self,
        sector_id: int,
        coordinate: Coordinate,
        name: str,
        sector_type: SectorType,
        difficulty: int,
        resources: Mapping[ResourceKind, int],
        hazards: Mapping[HazardKind, int],
        discovered_by: Optional[int] = None,
        discovered_at: Optional[datetime] = None,
        visit_count: int = 0,
        last_visited: Optional[datetime] = None,
        is_special: bool = False,
    ) -> None:
        super().__init__(sector_id)
        self._coordinate = coordinate
        self._name = name
        self._sector_type = sector_type
        self._difficulty = difficulty
        self._resources: Dict[ResourceKind, int] = dict(resources)
        self._hazards: Dict[HazardKind, int] = dict(hazards)
        self.discovered_by = discovered_by
        self.discovered_at = discovered_at
        self.visit_count = visit_count
        self.last_visited = last_visited
        self.is_special = is_special

    @property
    def coordinate(self) -> Coordinate:
        return self._coordinate

    @property
    def name(self) -> str:
        return self._name

    @property
    def sector_type(self) -> SectorType:
        return self._sector_type

    @property
    def difficulty(self) -> int:
        return self._difficulty

    @property
    def resources(self) -> Dict[ResourceKind, int]:
        return dict(self._resources)

    @property
    def hazards(self) -> Dict[HazardKind, int]:
        return dict(self._hazards)

    def first_resource(self) -> Optional[ResourceKind]:
        return next(iter(self._resources), None)

    def first_hazard(self) -> Optional[HazardKind]:
        return next(iter(self._hazards), None)

    def record_visit(self, at: datetime) -> None:
        self.visit_count += 1
        self.last_visited = at

    def mark_discovered(self, player_id: int, at: datetime) -> None:
        """Credit the discovery; emits `sector_discovered`."""
        if self.discovered_by is not None:
            raise InvariantViolation(
                f"sector {self.coordinate} already discovered by {self.discovered_by}",
                field="discovered_by",
            )
        self.discovered_by = player_id
        self.discovered_at = at
        self.add_domain_event(GameEvent.SECTOR_DISCOVERED, self.snapshot())

    def snapshot(self) -> Dict[str, Any]:
        return {
            "sector_id": self.id,
            "coordinates": self.coordinate.key,
            "name": self.name,
            "sector_type": self.sector_type.value,
            "difficulty": self.difficulty,
            "resources": {kind.value: amount for kind, amount in self._resources.items()},
            "hazards": {kind.value: level for kind, level in self._hazards.items()},
            "discovered_by": self.discovered_by,
            "visit_count": self.visit_count,
        }

    def __repr__(self) -> str:
        return f"Sector(id={self.id!r}, coordinate={self.coordinate.key!r}, name={self.name!r})"
