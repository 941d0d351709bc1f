"""
Player and ship rows.

Schema only; the domain snapshots (PlayerState, ShipState) carry the
invariants and the repositories translate between the two.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nexium.core.database.base import Base, IdMixin, TimestampMixin, UTCDateTime, utc_now


class PlayerRecord(Base, IdMixin, TimestampMixin):
    """
    A registered player.

    Fields:
    - external_id: identity from the chat platform (unique)
    - currency: Nexium Crystals, Numeric(20, 2)
    - energy / max_energy / last_energy_restore: lazily regenerated pool
    - total_explored / total_battles_won: lifetime counters
    """

    __tablename__ = "players"
    __table_args__ = (
        CheckConstraint("currency >= 0", name="currency_non_negative"),
        CheckConstraint("energy >= 0 AND energy <= max_energy", name="energy_in_range"),
        Index("ix_players_battles_won", "total_battles_won"),
    )

    external_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)

    currency: Mapped[Decimal] = mapped_column(
        Numeric(20, 2, asdecimal=True),
        nullable=False,
        default=Decimal("0.00"),
    )

    energy: Mapped[int] = mapped_column(nullable=False, default=100)
    max_energy: Mapped[int] = mapped_column(nullable=False, default=100)
    last_energy_restore: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    total_explored: Mapped[int] = mapped_column(nullable=False, default=0)
    total_battles_won: Mapped[int] = mapped_column(nullable=False, default=0)
    rank: Mapped[int] = mapped_column(nullable=False, default=0)
    last_active: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    # Relationships
    ships: Mapped[List["ShipRecord"]] = relationship(
        "ShipRecord",
        back_populates="owner",
        cascade="all, delete-orphan",
    )


class ShipRecord(Base, IdMixin, TimestampMixin):
    """A player's ship. One active ship per player takes part in actions."""

    __tablename__ = "ships"
    __table_args__ = (
        CheckConstraint("hull >= 0 AND hull <= max_hull", name="hull_in_range"),
        CheckConstraint("shields >= 0 AND shields <= max_shields", name="shields_in_range"),
        CheckConstraint("fuel >= 0 AND fuel <= max_fuel", name="fuel_in_range"),
        Index("ix_ships_owner_active", "owner_id", "is_active"),
    )

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    ship_type: Mapped[str] = mapped_column(String(50), nullable=False, default="explorer")

    # Combat pools
    hull: Mapped[int] = mapped_column(nullable=False, default=100)
    max_hull: Mapped[int] = mapped_column(nullable=False, default=100)
    shields: Mapped[int] = mapped_column(nullable=False, default=50)
    max_shields: Mapped[int] = mapped_column(nullable=False, default=50)

    # Stats
    attack: Mapped[int] = mapped_column(nullable=False, default=20)
    defense: Mapped[int] = mapped_column(nullable=False, default=15)
    speed: Mapped[int] = mapped_column(nullable=False, default=10)

    fuel: Mapped[int] = mapped_column(nullable=False, default=100)
    max_fuel: Mapped[int] = mapped_column(nullable=False, default=100)

    # Progression
    experience: Mapped[int] = mapped_column(nullable=False, default=0)
    level: Mapped[int] = mapped_column(nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)

    owner: Mapped["PlayerRecord"] = relationship("PlayerRecord", back_populates="ships")
