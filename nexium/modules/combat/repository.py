"""Append-only battle history, also the source of the attacker cooldown."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from nexium.core.logging.logger import get_logger
from nexium.database.models import BattleRecord
from nexium.domain.models.battle import BattleResult, BattleSide
from nexium.modules.shared.base_repository import BaseRepository

logger = get_logger(__name__)


class BattleRepository(BaseRepository[BattleRecord]):
    def __init__(self) -> None:
        super().__init__(BattleRecord, logger)

    async def record(
        self,
        session: AsyncSession,
        *,
        attacker_id: int,
        defender_id: int,
        result: BattleResult,
        currency_transferred: Decimal,
        at: datetime,
    ) -> BattleRecord:
        winner_id = attacker_id if result.winner is BattleSide.ATTACKER else defender_id
        return await self.add(
            session,
            BattleRecord(
                attacker_id=attacker_id,
                defender_id=defender_id,
                attacker_ship_id=result.attacker.ship_id,
                defender_ship_id=result.defender.ship_id,
                winner_id=winner_id,
                winner_side=result.winner.value,
                rounds=result.rounds,
                rating=result.rating.value,
                attacker_damage=result.attacker.hull_damage_taken,
                defender_damage=result.defender.hull_damage_taken,
                currency_transferred=currency_transferred,
                decided_by_round_cap=result.decided_by_round_cap,
                log=list(result.log),
                created_at=at,
            ),
        )

    async def last_attack_at(self, session: AsyncSession, attacker_id: int) -> Optional[datetime]:
        """Most recent battle this player started, for the cooldown check."""
        stmt = (
            select(BattleRecord.created_at)
            .where(BattleRecord.attacker_id == attacker_id)
            .order_by(BattleRecord.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def history(self, session: AsyncSession, player_id: int, limit: int = 10) -> List[BattleRecord]:
        return await self.find_many_where(
            session,
            or_(BattleRecord.attacker_id == player_id, BattleRecord.defender_id == player_id),
            order_by=(BattleRecord.created_at.desc(), BattleRecord.id.desc()),
            limit=limit,
        )
