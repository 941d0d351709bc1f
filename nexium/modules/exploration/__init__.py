"""
Exploration Module
==================

Domain: explore, scan and hyperspace jumps across the shared universe.

- ExplorationEngine: success rolls, rewards, jump costs and mishaps
- ExplorationLogRepository: append-only action log
"""

from .engine import ExplorationEngine
from .repository import ExplorationLogRepository

__all__ = [
    "ExplorationEngine",
    "ExplorationLogRepository",
]
