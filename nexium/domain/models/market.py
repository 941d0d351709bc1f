"""
Market domain models.

- `Item`: catalog entry a player can hold and trade.
- `InventoryEntry`: (player, item) holding; a zero quantity is removed from
  storage, never kept.
- `MarketListing`: standing offer. `total_price == quantity * price_per_unit`
  always; a listing is never partially filled.
- `SettlementResult`: the four effects of a purchase, applied atomically by
  the orchestration layer.
- `MarketTrend` / `PopularItem`: read-only aggregates over active listings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from nexium.core.event.types import GameEvent
from nexium.domain.exceptions import InvariantViolation
from nexium.domain.models.base import Entity
from nexium.domain.models.player import PlayerDelta


@dataclass(frozen=True)
class Item:
    id: int
    name: str
    item_type: str = "resource"
    rarity: str = "common"
    value: Decimal = Decimal("0.00")
    description: Optional[str] = None


@dataclass(frozen=True)
class InventoryEntry:
    player_id: int
    item_id: int
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise InvariantViolation(f"inventory quantity cannot be negative ({self.quantity})", field="quantity")


class ListingStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    EXPIRED = "expired"


class MarketListing(Entity[str]):
    """A seller's offer. Deactivated exactly once, by sale or expiry."""

    def __init__(
        self,
        listing_id: str,
        seller_id: int,
        item_id: int,
        quantity: int,
        price_per_unit: Decimal,
        total_price: Decimal,
        created_at: datetime,
        expires_at: datetime,
        is_active: bool = True,
        item_name: Optional[str] = None,
    ) -> None:
        super().__init__(listing_id)
        if quantity <= 0:
            raise InvariantViolation(f"listing quantity must be positive ({quantity})", field="quantity")
        if price_per_unit <= 0:
            raise InvariantViolation("listing price must be positive", field="price_per_unit")
        if total_price != quantity * price_per_unit:
            raise InvariantViolation(
                f"total {total_price} != {quantity} x {price_per_unit}", field="total_price"
            )
        self.seller_id = seller_id
        self.item_id = item_id
        self.quantity = quantity
        self.price_per_unit = price_per_unit
        self.total_price = total_price
        self.created_at = created_at
        self.expires_at = expires_at
        self.is_active = is_active
        self.item_name = item_name

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_available(self, now: datetime) -> bool:
        return self.is_active and not self.is_expired(now)

    def announce(self) -> None:
        self.add_domain_event(GameEvent.LISTING_CREATED, self.snapshot())

    def close(self, status: ListingStatus, **context: Any) -> None:
        """Deactivate after a sale or an expiry sweep; emits the matching event."""
        if not self.is_active:
            raise InvariantViolation(f"listing {self.id} already closed", field="is_active")
        if status is ListingStatus.ACTIVE:
            raise InvariantViolation("cannot close a listing into ACTIVE", field="status")
        self.is_active = False
        event = GameEvent.LISTING_SOLD if status is ListingStatus.SOLD else GameEvent.LISTING_EXPIRED
        self.add_domain_event(event, {**self.snapshot(), **context})

    def snapshot(self) -> Dict[str, Any]:
        return {
            "listing_id": self.id,
            "seller_id": self.seller_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "price_per_unit": str(self.price_per_unit),
            "total_price": str(self.total_price),
            "expires_at": self.expires_at.isoformat(),
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return (
            f"MarketListing(id={self.id!r}, item_id={self.item_id!r}, "
            f"quantity={self.quantity!r}, price_per_unit={self.price_per_unit!r})"
        )


@dataclass(frozen=True)
class SettlementResult:
    """Everything a successful purchase changes."""

    listing_id: str
    buyer_id: int
    seller_id: int
    item_id: int
    quantity: int
    total_price: Decimal
    buyer_delta: PlayerDelta
    seller_delta: PlayerDelta

    def snapshot(self) -> Dict[str, Any]:
        return {
            "listing_id": self.listing_id,
            "buyer_id": self.buyer_id,
            "seller_id": self.seller_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "total_price": str(self.total_price),
        }


class TrendDirection(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


@dataclass(frozen=True)
class MarketTrend:
    item_id: int
    direction: TrendDirection
    change_percent: Decimal
    sample_size: int


@dataclass(frozen=True)
class PopularItem:
    item_id: int
    item_name: Optional[str]
    listings: int
    average_price: Decimal
