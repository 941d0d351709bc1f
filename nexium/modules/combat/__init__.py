"""
Combat Module
=============

Domain: ship-versus-ship battle resolution and battle history.

- CombatEngine: pure round-by-round simulation
- BattleRepository: append-only battle records, attacker cooldown source
"""

from .engine import CombatEngine
from .repository import BattleRepository

__all__ = [
    "BattleRepository",
    "CombatEngine",
]
