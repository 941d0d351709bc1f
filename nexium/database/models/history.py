"""
Append-only history rows: battles and exploration actions.
Pure schema only.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from nexium.core.database.base import Base, IdMixin, UTCDateTime, utc_now


class BattleRecord(Base, IdMixin):
    __tablename__ = "battles"
    __table_args__ = (
        Index("ix_battles_attacker_time", "attacker_id", "created_at"),
        Index("ix_battles_defender_time", "defender_id", "created_at"),
    )

    attacker_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    defender_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    attacker_ship_id: Mapped[int] = mapped_column(ForeignKey("ships.id", ondelete="CASCADE"), nullable=False)
    defender_ship_id: Mapped[int] = mapped_column(ForeignKey("ships.id", ondelete="CASCADE"), nullable=False)
    winner_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)

    winner_side: Mapped[str] = mapped_column(String(16), nullable=False)
    rounds: Mapped[int] = mapped_column(nullable=False)
    rating: Mapped[str] = mapped_column(String(32), nullable=False)
    attacker_damage: Mapped[int] = mapped_column(nullable=False, default=0)
    defender_damage: Mapped[int] = mapped_column(nullable=False, default=0)
    currency_transferred: Mapped[Decimal] = mapped_column(
        Numeric(20, 2), nullable=False, default=Decimal("0.00")
    )
    decided_by_round_cap: Mapped[bool] = mapped_column(nullable=False, default=False)
    log: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)


class ExplorationRecord(Base, IdMixin):
    """One row per explore / scan / jump."""

    __tablename__ = "explorations"
    __table_args__ = (Index("ix_explorations_player_time", "player_id", "created_at"),)

    player_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    ship_id: Mapped[int] = mapped_column(ForeignKey("ships.id", ondelete="CASCADE"), nullable=False)
    sector_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("sectors.id", ondelete="SET NULL"),
        nullable=True,
    )

    action_type: Mapped[str] = mapped_column(String(16), nullable=False)
    energy_cost: Mapped[int] = mapped_column(nullable=False, default=0)
    success: Mapped[bool] = mapped_column(nullable=False)
    results: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    rewards: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
