"""
Outcomes of exploration actions (explore, scan, jump).

Each outcome carries the deltas the orchestration layer must apply; the
engine itself never writes player or ship state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from nexium.domain.models.player import PlayerDelta
from nexium.domain.models.sector import HazardKind, ResourceKind, Sector
from nexium.domain.models.ship import ShipDelta


class ExplorationAction(str, Enum):
    EXPLORE = "explore"
    SCAN = "scan"
    JUMP = "jump"


@dataclass(frozen=True)
class ExplorationOutcome:
    success: bool
    sector: Sector
    success_chance: float
    energy_cost: int
    experience_gained: int
    leveled_up: bool
    currency_reward: int
    description: str
    discovery: bool = False
    resource_found: Optional[ResourceKind] = None
    resource_amount: int = 0
    player_delta: PlayerDelta = field(default_factory=PlayerDelta)
    ship_delta: ShipDelta = field(default_factory=ShipDelta)

    def rewards(self) -> List[str]:
        lines: List[str] = []
        if self.resource_found is not None:
            lines.append(f"{self.resource_amount} {self.resource_found.label}")
        if self.currency_reward:
            lines.append(f"{self.currency_reward} Nexium Crystals")
        return lines

    def snapshot(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "coordinates": self.sector.coordinate.key,
            "sector_type": self.sector.sector_type.value,
            "difficulty": self.sector.difficulty,
            "success_chance": self.success_chance,
            "experience": self.experience_gained,
            "currency": self.currency_reward,
            "resource": self.resource_found.value if self.resource_found else None,
            "resource_amount": self.resource_amount,
            "discovery": self.discovery,
            "leveled_up": self.leveled_up,
            "rewards": self.rewards(),
            "description": self.description,
        }


@dataclass(frozen=True)
class ScanDetection:
    """At most one resource and one hazard reported per scanned sector."""

    sector: Sector
    resource: Optional[ResourceKind]
    hazard: Optional[HazardKind]


@dataclass(frozen=True)
class ScanOutcome:
    detections: Tuple[ScanDetection, ...]
    energy_cost: int

    @property
    def sectors(self) -> List[Sector]:
        return [detection.sector for detection in self.detections]

    @property
    def resources(self) -> List[str]:
        return [
            f"{d.resource.label} detected in {d.sector.name}"
            for d in self.detections
            if d.resource is not None
        ]

    @property
    def anomalies(self) -> List[str]:
        return [f"{d.hazard.label} in {d.sector.name}" for d in self.detections if d.hazard is not None]

    def snapshot(self) -> Dict[str, Any]:
        return {
            "sectors_scanned": len(self.detections),
            "resources_detected": len(self.resources),
            "anomalies_detected": len(self.anomalies),
            "coordinates": [sector.coordinate.key for sector in self.sectors],
            "resources": self.resources,
            "anomalies": self.anomalies,
        }


@dataclass(frozen=True)
class JumpOutcome:
    success: bool
    sector: Sector
    distance: float
    energy_cost: int
    energy_spent: int
    fuel_spent: int
    hull_damage: int
    discovery: bool = False
    player_delta: PlayerDelta = field(default_factory=PlayerDelta)
    ship_delta: ShipDelta = field(default_factory=ShipDelta)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "coordinates": self.sector.coordinate.key,
            "distance": round(self.distance, 2),
            "energy_spent": self.energy_spent,
            "fuel_spent": self.fuel_spent,
            "hull_damage": self.hull_damage,
        }
