"""
Game Module
===========

Orchestration: GameService applies engine output under locks and one
transaction per command; CommandRouter dispatches GameCommand values to it.
"""

from .commands import CommandResult, CommandRouter, GameCommand
from .service import ActionReport, BattleReport, GameService, PlayerProfile

__all__ = [
    "ActionReport",
    "BattleReport",
    "CommandResult",
    "CommandRouter",
    "GameCommand",
    "GameService",
    "PlayerProfile",
]
