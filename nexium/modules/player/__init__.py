"""Player and ship persistence."""

from .repository import PlayerRepository, ShipRepository

__all__ = ["PlayerRepository", "ShipRepository"]
