"""
Lazy energy regeneration.

Energy comes back at one unit per `economy.energy_regen_minutes` of wall
clock, capped at max energy. There is no background timer: the game service
calls `EnergyRegenerator.regenerate` at the start of every mutating command
and folds the returned delta into that command's transaction.

Timestamp policy: partial progress toward the next unit is kept by moving
`last_energy_restore` forward only by the whole intervals consumed. Once the
pool is full the timestamp snaps to `now`, so a full pool does not bank time.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from nexium.core.config.manager import ConfigManager
from nexium.core.logging.logger import get_logger
from nexium.domain.models.player import EnergyRestore, PlayerDelta, PlayerState

logger = get_logger(__name__)


class EnergyRegenerator:
    def __init__(self, config_manager: ConfigManager) -> None:
        minutes = config_manager.get_int("economy.energy_regen_minutes", 1)
        if minutes <= 0:
            minutes = 1
        self.interval = timedelta(minutes=minutes)

    def regenerate(self, player: PlayerState, now: datetime) -> EnergyRestore:
        if player.energy >= player.max_energy:
            return EnergyRestore(
                restored=0,
                energy=player.energy,
                delta=PlayerDelta(energy_restored_at=now),
            )

        elapsed = now - player.last_energy_restore
        intervals = int(elapsed // self.interval) if elapsed > timedelta(0) else 0
        if intervals <= 0:
            return EnergyRestore(restored=0, energy=player.energy, delta=PlayerDelta())

        restored = min(intervals, player.max_energy - player.energy)
        energy = player.energy + restored
        stamp = now if energy >= player.max_energy else player.last_energy_restore + self.interval * restored

        logger.debug(
            "Energy regenerated",
            extra={"player_id": player.id, "restored": restored, "energy": energy},
        )
        return EnergyRestore(
            restored=restored,
            energy=energy,
            delta=PlayerDelta(energy=restored, energy_restored_at=stamp),
        )
