"""
Battle value objects.

A `BattleResult` is produced once by the combat engine and never mutated;
the orchestration layer persists it as an append-only record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class BattleSide(str, Enum):
    ATTACKER = "attacker"
    DEFENDER = "defender"

    @property
    def opponent(self) -> "BattleSide":
        return BattleSide.DEFENDER if self is BattleSide.ATTACKER else BattleSide.ATTACKER


class BalanceRating(str, Enum):
    PERFECTLY_BALANCED = "Perfectly Balanced"
    WELL_MATCHED = "Well Matched"
    COMPETITIVE = "Competitive"
    ONE_SIDED = "One-Sided"
    OVERWHELMING = "Overwhelming"


@dataclass(frozen=True)
class CombatantReport:
    """Where one side ended up."""

    side: BattleSide
    ship_id: int
    initial_hull: int
    final_hull: int
    initial_shields: int
    final_shields: int
    damage_dealt: int

    @property
    def hull_damage_taken(self) -> int:
        return self.initial_hull - self.final_hull

    @property
    def defeated(self) -> bool:
        return self.final_hull <= 0


@dataclass(frozen=True)
class BattleResult:
    winner: BattleSide
    rounds: int
    attacker: CombatantReport
    defender: CombatantReport
    log: Tuple[str, ...]
    rating: BalanceRating
    description: str
    decided_by_round_cap: bool = False

    def report(self, side: BattleSide) -> CombatantReport:
        return self.attacker if side is BattleSide.ATTACKER else self.defender

    @property
    def winner_report(self) -> CombatantReport:
        return self.report(self.winner)

    @property
    def loser_report(self) -> CombatantReport:
        return self.report(self.winner.opponent)

    @property
    def winner_damage(self) -> int:
        """Hull damage the winning ship took."""
        return self.winner_report.hull_damage_taken

    @property
    def loser_damage(self) -> int:
        return self.loser_report.hull_damage_taken

    def snapshot(self) -> Dict[str, Any]:
        return {
            "winner": self.winner.value,
            "rounds": self.rounds,
            "rating": self.rating.value,
            "description": self.description,
            "decided_by_round_cap": self.decided_by_round_cap,
            "attacker": _report_dict(self.attacker),
            "defender": _report_dict(self.defender),
            "log": list(self.log),
        }


def _report_dict(report: CombatantReport) -> Dict[str, Any]:
    return {
        "ship_id": report.ship_id,
        "initial_hull": report.initial_hull,
        "final_hull": report.final_hull,
        "final_shields": report.final_shields,
        "hull_damage_taken": report.hull_damage_taken,
        "damage_dealt": report.damage_dealt,
    }
