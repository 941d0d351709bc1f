"""
Boundary contracts the engines depend on.

The exploration engine only needs sector get-or-create and visit
bookkeeping. `WorldSession` (nexium.modules.world.repository) is the
SQLAlchemy-backed implementation; unit tests pass an in-memory fake.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Tuple

from nexium.domain.models.sector import Coordinate, Sector, SectorDraft


class WorldRepository(Protocol):
    async def get_sector_by_coordinate(self, coordinate: Coordinate) -> Optional[Sector]:
        ...

    async def create_sector_if_absent(
        self,
        draft: SectorDraft,
        discovered_by: Optional[int] = None,
        at: Optional[datetime] = None,
    ) -> Tuple[Sector, bool]:
        """
        Insert the draft unless its coordinate already exists.

        Returns the stored sector and whether this call created it. Atomic:
        concurrent callers for the same coordinate observe one row.
        """
        ...

    async def record_visit(self, sector_id: int, at: datetime) -> None:
        ...
