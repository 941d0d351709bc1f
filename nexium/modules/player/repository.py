"""
Player and ship persistence.

Both repositories hand out immutable snapshots (PlayerState, ShipState)
and accept deltas. `apply_delta` locks the row, applies the delta through
the domain type (so every invariant is re-checked), writes the result back
and returns the new snapshot. A delta that would break an invariant raises
InvariantViolation and the surrounding transaction rolls back.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from nexium.core.logging.logger import get_logger
from nexium.database.models import PlayerRecord, ShipRecord
from nexium.domain.exceptions import NotFoundError
from nexium.domain.models.player import PlayerDelta, PlayerState
from nexium.domain.models.ship import ShipDelta, ShipState
from nexium.modules.shared.base_repository import BaseRepository

logger = get_logger(__name__)


class PlayerRepository(BaseRepository[PlayerRecord]):
    def __init__(self) -> None:
        super().__init__(PlayerRecord, logger)

    async def load(self, session: AsyncSession, player_id: int) -> PlayerState:
        record = await self.get(session, player_id)
        if record is None:
            raise NotFoundError("Player", player_id)
        return self.to_state(record)

    async def load_for_update(self, session: AsyncSession, player_id: int) -> PlayerState:
        record = await self.get_for_update(session, player_id)
        if record is None:
            raise NotFoundError("Player", player_id)
        return self.to_state(record)

    async def find_by_external_id(self, session: AsyncSession, external_id: str) -> Optional[PlayerState]:
        record = await self.find_one_where(session, PlayerRecord.external_id == external_id)
        return self.to_state(record) if record is not None else None

    async def create(
        self,
        session: AsyncSession,
        external_id: str,
        username: str,
        *,
        currency: Decimal,
        max_energy: int,
        at: datetime,
    ) -> PlayerState:
        record = await self.add(
            session,
            PlayerRecord(
                external_id=external_id,
                username=username,
                currency=currency,
                energy=max_energy,
                max_energy=max_energy,
                last_energy_restore=at,
                last_active=at,
                total_explored=0,
                total_battles_won=0,
                rank=0,
            ),
        )
        logger.info("Player registered", extra={"player_id": record.id, "external_id": external_id})
        return self.to_state(record)

    async def apply_delta(self, session: AsyncSession, player_id: int, delta: PlayerDelta) -> PlayerState:
        record = await self.get_for_update(session, player_id)
        if record is None:
            raise NotFoundError("Player", player_id)

        before = self.to_state(record)
        after = before.apply(delta)
        if after is before:
            return before

        record.currency = after.currency
        record.energy = after.energy
        record.total_explored = after.total_explored
        record.total_battles_won = after.total_battles_won
        record.last_energy_restore = after.last_energy_restore
        record.last_active = after.last_active
        await session.flush()

        self.log.debug(
            "Player delta applied",
            extra={
                "player_id": player_id,
                "currency_delta": str(delta.currency),
                "energy_delta": delta.energy,
            },
        )
        return after

    async def top_by_battles(self, session: AsyncSession, limit: int = 10) -> List[PlayerState]:
        records = await self.find_many_where(
            session,
            order_by=(PlayerRecord.total_battles_won.desc(), PlayerRecord.id),
            limit=limit,
        )
        return [self.to_state(record) for record in records]

    @staticmethod
    def to_state(record: PlayerRecord) -> PlayerState:
        return PlayerState(
            id=record.id,
            external_id=record.external_id,
            username=record.username,
            currency=Decimal(record.currency),
            energy=record.energy,
            max_energy=record.max_energy,
            last_energy_restore=record.last_energy_restore,
            total_explored=record.total_explored,
            total_battles_won=record.total_battles_won,
            last_active=record.last_active,
            rank=record.rank,
        )


class ShipRepository(BaseRepository[ShipRecord]):
    def __init__(self) -> None:
        super().__init__(ShipRecord, logger)

    async def load(self, session: AsyncSession, ship_id: int) -> ShipState:
        record = await self.get(session, ship_id)
        if record is None:
            raise NotFoundError("Ship", ship_id)
        return self.to_state(record)

    async def load_active(self, session: AsyncSession, owner_id: int, *, for_update: bool = False) -> ShipState:
        """The owner's active ship (lowest id when several are flagged active)."""
        records = await self.find_many_where(
            session,
            ShipRecord.owner_id == owner_id,
            ShipRecord.is_active.is_(True),
            order_by=(ShipRecord.id,),
            for_update=for_update,
            limit=1,
        )
        if not records:
            raise NotFoundError("Ship", f"active ship of player {owner_id}")
        return self.to_state(records[0])

    async def create(
        self,
        session: AsyncSession,
        owner_id: int,
        name: str,
        *,
        hull: int,
        shields: int,
        attack: int,
        defense: int,
        speed: int,
        fuel: int,
        ship_type: str = "explorer",
    ) -> ShipState:
        record = await self.add(
            session,
            ShipRecord(
                owner_id=owner_id,
                name=name,
                ship_type=ship_type,
                hull=hull,
                max_hull=hull,
                shields=shields,
                max_shields=shields,
                attack=attack,
                defense=defense,
                speed=speed,
                fuel=fuel,
                max_fuel=fuel,
                experience=0,
                level=1,
                is_active=True,
            ),
        )
        return self.to_state(record)

    async def apply_delta(self, session: AsyncSession, ship_id: int, delta: ShipDelta) -> ShipState:
        record = await self.get_for_update(session, ship_id)
        if record is None:
            raise NotFoundError("Ship", ship_id)

        before = self.to_state(record)
        after = before.apply(delta)
        if after is before:
            return before

        record.hull = after.hull
        record.shields = after.shields
        record.fuel = after.fuel
        record.experience = after.experience
        record.level = after.level
        await session.flush()

        self.log.debug(
            "Ship delta applied",
            extra={"ship_id": ship_id, "hull_delta": delta.hull, "fuel_delta": delta.fuel},
        )
        return after

    @staticmethod
    def to_state(record: ShipRecord) -> ShipState:
        return ShipState(
            id=record.id,
            owner_id=record.owner_id,
            name=record.name,
            hull=record.hull,
            max_hull=record.max_hull,
            shields=record.shields,
            max_shields=record.max_shields,
            attack=record.attack,
            defense=record.defense,
            speed=record.speed,
            fuel=record.fuel,
            max_fuel=record.max_fuel,
            experience=record.experience,
            level=record.level,
            is_active=record.is_active,
            ship_type=record.ship_type,
        )
