"""
Item catalog, inventory and market listing rows.

Pure schema. Inventory rows with quantity 0 are deleted by the repository,
so the check constraint requires a positive quantity.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nexium.core.database.base import Base, IdMixin, UTCDateTime, utc_now


class ItemRecord(Base, IdMixin):
    __tablename__ = "items"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    item_type: Mapped[str] = mapped_column(String(50), nullable=False, default="resource")
    rarity: Mapped[str] = mapped_column(String(20), nullable=False, default="common")
    value: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0.00"))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class InventoryRecord(Base, IdMixin):
    """(player, item) holding."""

    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("player_id", "item_id", name="uq_inventory_player_item"),
        CheckConstraint("quantity > 0", name="quantity_positive"),
    )

    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)


class MarketListingRecord(Base):
    """
    A standing offer.

    - id: uuid4 string
    - total_price == quantity * price_per_unit (checked by the domain type)
    - is_active flips to False exactly once, through a conditional UPDATE
    """

    __tablename__ = "market_listings"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("price_per_unit > 0", name="price_positive"),
        Index("ix_market_listings_active_expiry", "is_active", "expires_at"),
        Index("ix_market_listings_item_active", "item_id", "is_active"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    item: Mapped["ItemRecord"] = relationship("ItemRecord", lazy="joined", innerjoin=True)
