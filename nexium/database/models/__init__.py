"""
Database Models Package
=======================

SQLAlchemy ORM rows for Nexium. Schema only, no game rules.

- player: PlayerRecord, ShipRecord
- world: SectorRecord
- market: ItemRecord, InventoryRecord, MarketListingRecord
- history: BattleRecord, ExplorationRecord (append-only)

Importing this package registers every table on `Base.metadata`.
"""

from nexium.core.database.base import Base

from .history import BattleRecord, ExplorationRecord
from .market import InventoryRecord, ItemRecord, MarketListingRecord
from .player import PlayerRecord, ShipRecord
from .world import SectorRecord

__all__ = [
    "Base",
    "BattleRecord",
    "ExplorationRecord",
    "InventoryRecord",
    "ItemRecord",
    "MarketListingRecord",
    "PlayerRecord",
    "ShipRecord",
    "SectorRecord",
]
