"""
World persistence: sectors keyed by coordinate.

`SectorRepository` is the stateless data-access object (session per call,
like every repository here). `WorldSession` binds it to one transaction's
session and satisfies the `WorldRepository` port the exploration engine
depends on.

Get-or-create
-------------
The insert runs inside a SAVEPOINT. If a concurrent transaction inserted
the same coordinate first, the unique constraint fires, only the savepoint
is rolled back, and the winner's row is re-fetched. The caller's outer
transaction stays usable and no duplicate row can exist.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nexium.core.logging.logger import get_logger
from nexium.database.models import SectorRecord
from nexium.domain.exceptions import ConflictError
from nexium.domain.models.sector import (
    Coordinate,
    HazardKind,
    ResourceKind,
    Sector,
    SectorDraft,
    SectorType,
)
from nexium.modules.shared.base_repository import BaseRepository

logger = get_logger(__name__)


class SectorRepository(BaseRepository[SectorRecord]):
    def __init__(self) -> None:
        super().__init__(SectorRecord, logger)

    async def get_by_coordinate(self, session: AsyncSession, coordinate: Coordinate) -> Optional[SectorRecord]:
        return await self.find_one_where(session, SectorRecord.coordinates == coordinate.key)

    async def create_if_absent(
        self,
        session: AsyncSession,
        draft: SectorDraft,
    ) -> Tuple[SectorRecord, bool]:
        """Return (row, created). Never inserts a second row for a coordinate."""
        existing = await self.get_by_coordinate(session, draft.coordinate)
        if existing is not None:
            return existing, False

        record = SectorRecord(
            coordinates=draft.coordinate.key,
            name=draft.name,
            sector_type=draft.sector_type.value,
            difficulty=draft.difficulty,
            resources={kind.value: amount for kind, amount in draft.resources.items()},
            hazards={kind.value: level for kind, level in draft.hazards.items()},
            visit_count=0,
        )
        try:
            async with session.begin_nested():
                session.add(record)
        except IntegrityError:
            winner = await self.get_by_coordinate(session, draft.coordinate)
            logger.info(
                "Sector insert lost a race; using existing row",
                extra={"coordinates": draft.coordinate.key, "found": winner is not None},
            )
            if winner is None:
                raise ConflictError(
                    "Sector creation conflicted, please try again",
                    details={"coordinates": draft.coordinate.key},
                    error_code="SECTOR_CONFLICT",
                )
            return winner, False

        logger.info(
            "Sector charted",
            extra={
                "sector_id": record.id,
                "coordinates": record.coordinates,
                "sector_type": record.sector_type,
            },
        )
        return record, True

    async def increment_visits(self, session: AsyncSession, sector_id: int, at: datetime) -> None:
        stmt = (
            update(SectorRecord)
            .where(SectorRecord.id == sector_id)
            .values(visit_count=SectorRecord.visit_count + 1, last_visited=at)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)
        self.log.debug("Sector visit recorded", extra={"sector_id": sector_id})

    async def discovered_by(self, session: AsyncSession, player_id: int) -> List[SectorRecord]:
        return await self.find_many_where(
            session,
            SectorRecord.discovered_by == player_id,
            order_by=(SectorRecord.discovered_at, SectorRecord.id),
        )

    @staticmethod
    def to_entity(record: SectorRecord) -> Sector:
        return Sector(
            sector_id=record.id,
            coordinate=Coordinate.parse(record.coordinates),
            name=record.name,
            sector_type=SectorType(record.sector_type),
            difficulty=record.difficulty,
            resources={ResourceKind(kind): amount for kind, amount in (record.resources or {}).items()},
            hazards={HazardKind(kind): level for kind, level in (record.hazards or {}).items()},
            discovered_by=record.discovered_by,
            discovered_at=record.discovered_at,
            visit_count=record.visit_count,
            last_visited=record.last_visited,
            is_special=record.is_special,
        )


class WorldSession:
    """`WorldRepository` bound to one open transaction."""

    def __init__(self, session: AsyncSession, sectors: SectorRepository) -> None:
        self._session = session
        self._sectors = sectors

    async def get_sector_by_coordinate(self, coordinate: Coordinate) -> Optional[Sector]:
        record = await self._sectors.get_by_coordinate(self._session, coordinate)
        return self._sectors.to_entity(record) if record is not None else None

    async def create_sector_if_absent(
        self,
        draft: SectorDraft,
        discovered_by: Optional[int] = None,
        at: Optional[datetime] = None,
    ) -> Tuple[Sector, bool]:
        record, created = await self._sectors.create_if_absent(self._session, draft)
        sector = self._sectors.to_entity(record)

        if created and discovered_by is not None and at is not None:
            sector.mark_discovered(discovered_by, at)
            record.discovered_by = discovered_by
            record.discovered_at = at
            await self._session.flush()
        return sector, created

    async def record_visit(self, sector_id: int, at: datetime) -> None:
        await self._sectors.increment_visits(self._session, sector_id, at)
