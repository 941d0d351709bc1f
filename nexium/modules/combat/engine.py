"""
Ship Combat Engine
==================

Purpose
-------
Turn-based stochastic battle between two ship snapshots. Pure computation:
no storage, no clock. Given the same RandomSource state and the same two
ships, the result (winner, log, damage) is identical.

Round Procedure
---------------
1. Initiative: the faster ship fires first; equal speed favours the attacker.
2. Damage = max(1, attack + variation), variation uniform in
   [-damage_variation, +damage_variation]; then subtract
   floor(target defense * defense_factor), clamped to at least 1.
3. Critical hit with probability `crit_chance`: damage = floor(damage * 1.5).
4. Shields absorb first, the remainder hits hull (floored at 0).
5. The second ship retaliates only if it still has hull.

Rounds repeat while both hulls are above 0, up to `max_rounds`. If the cap
is reached with both ships alive the attacker is declared winner and the
result is flagged `decided_by_round_cap`.

Per-attack draw order: variation, crit roll. One extra draw picks the
closing description.

Config Keys (defaults in parentheses)
-------------------------------------
combat.max_rounds (10), combat.damage_variation (5),
combat.defense_factor (0.5), combat.crit_chance (0.1),
combat.crit_multiplier (1.5)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from nexium.core.config.manager import ConfigManager
from nexium.core.logging.logger import get_logger
from nexium.domain.models.battle import (
    BalanceRating,
    BattleResult,
    BattleSide,
    CombatantReport,
)
from nexium.domain.models.ship import ShipState
from nexium.modules.shared.random_source import RandomSource

logger = get_logger(__name__)

DESCRIPTION_TEMPLATES: Tuple[str, ...] = (
    "After {rounds} intense rounds of combat, the {winner} emerges victorious!",
    "The battle rages for {rounds} rounds before the {winner} claims victory!",
    "In a {rounds}-round engagement, the {winner} proves superior in combat!",
    "Following {rounds} rounds of fierce space combat, the {winner} is triumphant!",
)

# (upper bound exclusive, rating); anything at or above the last bound is OVERWHELMING
BALANCE_TIERS: Tuple[Tuple[float, BalanceRating], ...] = (
    (0.1, BalanceRating.PERFECTLY_BALANCED),
    (0.2, BalanceRating.WELL_MATCHED),
    (0.3, BalanceRating.COMPETITIVE),
    (0.5, BalanceRating.ONE_SIDED),
)


@dataclass
class _Combatant:
    """Mutable battle-local copy of a ship's fighting stats."""

    side: BattleSide
    ship_id: int
    hull: int
    shields: int
    attack: int
    defense: int
    speed: int
    damage_dealt: int = 0

    @classmethod
    def from_ship(cls, side: BattleSide, ship: ShipState) -> "_Combatant":
        return cls(
            side=side,
            ship_id=ship.id,
            hull=ship.hull,
            shields=ship.shields,
            attack=ship.attack,
            defense=ship.defense,
            speed=ship.speed,
        )

    @property
    def alive(self) -> bool:
        return self.hull > 0

    @property
    def label(self) -> str:
        return self.side.value.capitalize()


class CombatEngine:
    """
    Resolves ship-versus-ship battles.

    Public Methods
    --------------
    - simulate_battle(attacker, defender) -> BattleResult
    - balance_rating(ship_a, ship_b) -> BalanceRating
    """

    def __init__(self, config_manager: ConfigManager, rng: RandomSource) -> None:
        self._config = config_manager
        self._rng = rng

        self.max_rounds = config_manager.get_int("combat.max_rounds", 10)
        self.damage_variation = config_manager.get_int("combat.damage_variation", 5)
        self.defense_factor = config_manager.get_float("combat.defense_factor", 0.5)
        self.crit_chance = config_manager.get_float("combat.crit_chance", 0.1)
        self.crit_multiplier = config_manager.get_float("combat.crit_multiplier", 1.5)

        logger.debug(
            "CombatEngine initialized",
            extra={
                "max_rounds": self.max_rounds,
                "damage_variation": self.damage_variation,
                "crit_chance": self.crit_chance,
            },
        )

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def simulate_battle(
        self,
        attacker: ShipState,
        defender: ShipState,
        rng: Optional[RandomSource] = None,
    ) -> BattleResult:
        """
        Fight until one hull reaches 0 or the round cap.

        Both ships must have hull > 0; the caller enforces that.
        """
        rng = rng or self._rng
        a = _Combatant.from_ship(BattleSide.ATTACKER, attacker)
        d = _Combatant.from_ship(BattleSide.DEFENDER, defender)
        log: List[str] = []
        rounds = 0

        while a.alive and d.alive and rounds < self.max_rounds:
            rounds += 1
            first, second = (a, d) if a.speed >= d.speed else (d, a)

            self._perform_attack(rng, first, second, rounds, log)
            if second.alive:
                self._perform_attack(rng, second, first, rounds, log)

        decided_by_round_cap = a.alive and d.alive
        winner = BattleSide.ATTACKER if a.alive else BattleSide.DEFENDER

        rating = self.balance_rating(attacker, defender)
        description = rng.choice(DESCRIPTION_TEMPLATES).format(rounds=rounds, winner=winner.value)

        result = BattleResult(
            winner=winner,
            rounds=rounds,
            attacker=self._report(a, attacker),
            defender=self._report(d, defender),
            log=tuple(log),
            rating=rating,
            description=description,
            decided_by_round_cap=decided_by_round_cap,
        )

        logger.info(
            "Battle resolved",
            extra={
                "attacker_ship": attacker.id,
                "defender_ship": defender.id,
                "winner": winner.value,
                "rounds": rounds,
                "round_cap": decided_by_round_cap,
                "rating": rating.value,
            },
        )
        return result

    def balance_rating(self, ship_a: ShipState, ship_b: ShipState) -> BalanceRating:
        power_a, power_b = ship_a.power, ship_b.power
        average = (power_a + power_b) / 2
        if average == 0:
            return BalanceRating.PERFECTLY_BALANCED
        ratio = abs(power_a - power_b) / average
        for bound, rating in BALANCE_TIERS:
            if ratio < bound:
                return rating
        return BalanceRating.OVERWHELMING

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def roll_damage(self, rng: RandomSource, attack: int, target_defense: int) -> Tuple[int, bool]:
        """Return (damage, is_critical) for one attack before shields."""
        variation = rng.randint(-self.damage_variation, self.damage_variation)
        damage = max(1, attack + variation)
        damage = max(1, damage - math.floor(target_defense * self.defense_factor))

        critical = rng.chance(self.crit_chance)
        if critical:
            damage = math.floor(damage * self.crit_multiplier)
        return damage, critical

    def _perform_attack(
        self,
        rng: RandomSource,
        source: _Combatant,
        target: _Combatant,
        round_number: int,
        log: List[str],
    ) -> None:
        damage, critical = self.roll_damage(rng, source.attack, target.defense)
        if critical:
            log.append(f"Round {round_number}: {source.label} scores a critical hit!")

        absorbed = min(damage, target.shields)
        if absorbed > 0:
            target.shields -= absorbed
            damage -= absorbed
            log.append(f"Round {round_number}: {source.label} hits shields for {absorbed} damage")

        hull_hit = min(damage, target.hull)
        if damage > 0:
            target.hull = max(0, target.hull - damage)
            log.append(f"Round {round_number}: {source.label} hits hull for {damage} damage")

        source.damage_dealt += absorbed + hull_hit

        logger.debug(
            "Attack resolved",
            extra={
                "round": round_number,
                "source": source.side.value,
                "shield_damage": absorbed,
                "hull_damage": hull_hit,
                "critical": critical,
                "target_hull": target.hull,
            },
        )

    @staticmethod
    def _report(combatant: _Combatant, ship: ShipState) -> CombatantReport:
        return CombatantReport(
            side=combatant.side,
            ship_id=ship.id,
            initial_hull=ship.hull,
            final_hull=combatant.hull,
            initial_shields=ship.shields,
            final_shields=combatant.shields,
            damage_dealt=combatant.damage_dealt,
        )
