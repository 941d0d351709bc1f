"""
Player state and deltas.

Mirrors the ship model: `PlayerState` is an immutable snapshot, engines
produce `PlayerDelta`s, and `PlayerState.apply` re-validates invariants.

Invariants
----------
- currency is a non-negative Decimal with two decimal places
- 0 <= energy <= max_energy
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from nexium.domain.exceptions import InvariantViolation

CURRENCY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class PlayerDelta:
    """
    Signed changes to a player.

    `energy_restored_at` / `active_at` replace the stored timestamps when set.
    """

    currency: Decimal = ZERO
    energy: int = 0
    sectors_explored: int = 0
    battles_won: int = 0
    energy_restored_at: Optional[datetime] = None
    active_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.currency == ZERO
            and not (self.energy or self.sectors_explored or self.battles_won)
            and self.energy_restored_at is None
            and self.active_at is None
        )

    def __add__(self, other: "PlayerDelta") -> "PlayerDelta":
        return PlayerDelta(
            currency=self.currency + other.currency,
            energy=self.energy + other.energy,
            sectors_explored=self.sectors_explored + other.sectors_explored,
            battles_won=self.battles_won + other.battles_won,
            energy_restored_at=other.energy_restored_at or self.energy_restored_at,
            active_at=other.active_at or self.active_at,
        )


@dataclass(frozen=True)
class PlayerState:
    id: int
    external_id: str
    username: str
    currency: Decimal
    energy: int
    max_energy: int
    last_energy_restore: datetime
    total_explored: int = 0
    total_battles_won: int = 0
    last_active: Optional[datetime] = None
    rank: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.currency, Decimal):
            raise InvariantViolation("currency must be a Decimal", field="currency")
        if self.currency < ZERO:
            raise InvariantViolation(f"currency cannot be negative ({self.currency})", field="currency")
        if not 0 <= self.energy <= self.max_energy:
            raise InvariantViolation(
                f"energy {self.energy} outside [0, {self.max_energy}]", field="energy"
            )
        if self.total_explored < 0 or self.total_battles_won < 0:
            raise InvariantViolation("lifetime counters cannot be negative", field="counters")

    def can_afford(self, amount: Decimal) -> bool:
        return self.currency >= amount

    def apply(self, delta: PlayerDelta) -> "PlayerState":
        if delta.is_empty:
            return self
        return replace(
            self,
            currency=(self.currency + delta.currency).quantize(CURRENCY_QUANTUM),
            energy=self.energy + delta.energy,
            total_explored=self.total_explored + delta.sectors_explored,
            total_battles_won=self.total_battles_won + delta.battles_won,
            last_energy_restore=delta.energy_restored_at or self.last_energy_restore,
            last_active=delta.active_at or self.last_active,
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "player_id": self.id,
            "username": self.username,
            "currency": str(self.currency),
            "energy": self.energy,
            "max_energy": self.max_energy,
            "total_explored": self.total_explored,
            "total_battles_won": self.total_battles_won,
        }


@dataclass(frozen=True)
class EnergyRestore:
    """Result of lazily regenerating energy."""

    restored: int
    energy: int
    delta: PlayerDelta
