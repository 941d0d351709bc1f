"""
Ship state and deltas.

`ShipState` is an immutable snapshot hydrated from storage. Engines never
mutate it; they return a `ShipDelta` which the orchestration layer applies
with `ShipState.apply`, re-checking every invariant on the way.

Invariants
----------
- 0 <= hull <= max_hull, 0 <= shields <= max_shields, 0 <= fuel <= max_fuel
- experience >= 0, level >= 1
- a ship with hull == 0 is defeated
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict

from nexium.domain.exceptions import InvariantViolation


@dataclass(frozen=True)
class ShipDelta:
    """Signed changes to a ship. Zero means untouched."""

    hull: int = 0
    shields: int = 0
    fuel: int = 0
    experience: int = 0
    levels: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.hull or self.shields or self.fuel or self.experience or self.levels)

    def __add__(self, other: "ShipDelta") -> "ShipDelta":
        return ShipDelta(
            hull=self.hull + other.hull,
            shields=self.shields + other.shields,
            fuel=self.fuel + other.fuel,
            experience=self.experience + other.experience,
            levels=self.levels + other.levels,
        )


@dataclass(frozen=True)
class ShipState:
    id: int
    owner_id: int
    name: str
    hull: int
    max_hull: int
    shields: int
    max_shields: int
    attack: int
    defense: int
    speed: int
    fuel: int
    max_fuel: int
    experience: int = 0
    level: int = 1
    is_active: bool = True
    ship_type: str = "explorer"

    def __post_init__(self) -> None:
        self._check_pool("hull", self.hull, self.max_hull)
        self._check_pool("shields", self.shields, self.max_shields)
        self._check_pool("fuel", self.fuel, self.max_fuel)
        if self.experience < 0:
            raise InvariantViolation(f"experience cannot be negative ({self.experience})", field="experience")
        if self.level < 1:
            raise InvariantViolation(f"level must be at least 1 ({self.level})", field="level")
        if min(self.attack, self.defense, self.speed) < 0:
            raise InvariantViolation("combat stats cannot be negative", field="stats")

    @staticmethod
    def _check_pool(name: str, value: int, maximum: int) -> None:
        if not 0 <= value <= maximum:
            raise InvariantViolation(f"{name} {value} outside [0, {maximum}]", field=name)

    @property
    def is_defeated(self) -> bool:
        return self.hull <= 0

    @property
    def power(self) -> int:
        """Pre-battle strength used for the balance rating."""
        return self.attack + self.defense + self.hull + self.shields

    def apply(self, delta: ShipDelta) -> "ShipState":
        """
        Return the state after `delta`.

        Raises InvariantViolation if the result would leave a pool outside its
        bounds; callers are expected to clamp before building the delta.
        """
        if delta.is_empty:
            return self
        return replace(
            self,
            hull=self.hull + delta.hull,
            shields=self.shields + delta.shields,
            fuel=self.fuel + delta.fuel,
            experience=self.experience + delta.experience,
            level=self.level + delta.levels,
        )

    def hull_set_to(self, hull: int) -> ShipDelta:
        """Delta that brings hull to `hull`, floored at 0."""
        return ShipDelta(hull=max(0, hull) - self.hull)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "ship_id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "hull": self.hull,
            "max_hull": self.max_hull,
            "shields": self.shields,
            "max_shields": self.max_shields,
            "fuel": self.fuel,
            "max_fuel": self.max_fuel,
            "level": self.level,
            "experience": self.experience,
        }
