"""World persistence: sectors keyed by coordinate."""

from .repository import SectorRepository, WorldSession

__all__ = ["SectorRepository", "WorldSession"]
