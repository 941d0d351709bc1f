from nexium.domain.models.base import DomainEvent, Entity
from nexium.domain.models.battle import BalanceRating, BattleResult, BattleSide, CombatantReport
from nexium.domain.models.exploration import (
    ExplorationAction,
    ExplorationOutcome,
    JumpOutcome,
    ScanDetection,
    ScanOutcome,
)
from nexium.domain.models.market import (
    InventoryEntry,
    Item,
    ListingStatus,
    MarketListing,
    MarketTrend,
    PopularItem,
    SettlementResult,
    TrendDirection,
)
from nexium.domain.models.player import EnergyRestore, PlayerDelta, PlayerState
from nexium.domain.models.sector import (
    ORIGIN,
    Coordinate,
    HazardKind,
    ResourceKind,
    Sector,
    SectorDraft,
    SectorType,
)
from nexium.domain.models.ship import ShipDelta, ShipState

__all__ = [
    "BalanceRating",
    "BattleResult",
    "BattleSide",
    "CombatantReport",
    "Coordinate",
    "DomainEvent",
    "EnergyRestore",
    "Entity",
    "ExplorationAction",
    "ExplorationOutcome",
    "HazardKind",
    "InventoryEntry",
    "Item",
    "JumpOutcome",
    "ListingStatus",
    "MarketListing",
    "MarketTrend",
    "ORIGIN",
    "PlayerDelta",
    "PlayerState",
    "PopularItem",
    "ResourceKind",
    "ScanDetection",
    "ScanOutcome",
    "Sector",
    "SectorDraft",
    "SectorType",
    "SettlementResult",
    "ShipDelta",
    "ShipState",
    "TrendDirection",
]
