"""Append-only log of explore / scan / jump actions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from nexium.core.logging.logger import get_logger
from nexium.database.models import ExplorationRecord
from nexium.domain.models.exploration import ExplorationAction
from nexium.modules.shared.base_repository import BaseRepository

logger = get_logger(__name__)


class ExplorationLogRepository(BaseRepository[ExplorationRecord]):
    def __init__(self) -> None:
        super().__init__(ExplorationRecord, logger)

    async def record(
        self,
        session: AsyncSession,
        *,
        player_id: int,
        ship_id: int,
        sector_id: Optional[int],
        action: ExplorationAction,
        energy_cost: int,
        success: bool,
        results: Dict[str, Any],
        rewards: Optional[Dict[str, Any]] = None,
        at: datetime,
    ) -> ExplorationRecord:
        return await self.add(
            session,
            ExplorationRecord(
                player_id=player_id,
                ship_id=ship_id,
                sector_id=sector_id,
                action_type=action.value,
                energy_cost=energy_cost,
                success=success,
                results=results,
                rewards=rewards or {},
                created_at=at,
            ),
        )

    async def recent(self, session: AsyncSession, player_id: int, limit: int = 10) -> List[ExplorationRecord]:
        return await self.find_many_where(
            session,
            ExplorationRecord.player_id == player_id,
            order_by=(ExplorationRecord.created_at.desc(), ExplorationRecord.id.desc()),
            limit=limit,
        )
