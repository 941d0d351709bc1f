"""
SectorRecord: one row per charted coordinate.

`coordinates` is the natural key (unique). Resource and hazard maps are
plain JSON, not JSONB, so key order survives the round trip and "first
detected" stays stable on every backend.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from nexium.core.database.base import Base, IdMixin, UTCDateTime, utc_now


class SectorRecord(Base, IdMixin):
    __tablename__ = "sectors"
    __table_args__ = (
        Index("ix_sectors_type_difficulty", "sector_type", "difficulty"),
    )

    coordinates: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sector_type: Mapped[str] = mapped_column(String(50), nullable=False)
    difficulty: Mapped[int] = mapped_column(nullable=False)

    resources: Mapped[Dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    hazards: Mapped[Dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)

    discovered_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("players.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    discovered_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    visit_count: Mapped[int] = mapped_column(nullable=False, default=0)
    last_visited: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    is_special: Mapped[bool] = mapped_column(nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
