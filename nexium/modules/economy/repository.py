"""
Item catalog, inventory and market persistence.

- `ItemRepository`: read/create catalog entries; `get_or_create` uses a
  SAVEPOINT like the sector insert so concurrent registrations share rows.
- `InventoryRepository.adjust`: signed quantity change; the row is deleted
  at 0 and a negative result raises InvariantViolation (callers check
  holdings before they get here).
- `MarketRepository.deactivate`: conditional ``UPDATE ... WHERE is_active``;
  the rowcount tells the caller whether it won the listing. Two buyers
  racing for one listing can never both see True.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nexium.core.logging.logger import get_logger
from nexium.database.models import InventoryRecord, ItemRecord, MarketListingRecord
from nexium.domain.exceptions import ConflictError, InvariantViolation, NotFoundError
from nexium.domain.models.market import InventoryEntry, Item, MarketListing
from nexium.modules.shared.base_repository import BaseRepository

logger = get_logger(__name__)


class ItemRepository(BaseRepository[ItemRecord]):
    def __init__(self) -> None:
        super().__init__(ItemRecord, logger)

    async def load(self, session: AsyncSession, item_id: int) -> Item:
        record = await self.get(session, item_id)
        if record is None:
            raise NotFoundError("Item", item_id)
        return self.to_item(record)

    async def find_by_name(self, session: AsyncSession, name: str) -> Optional[Item]:
        record = await self.find_one_where(session, ItemRecord.name == name)
        return self.to_item(record) if record is not None else None

    async def create(
        self,
        session: AsyncSession,
        name: str,
        *,
        item_type: str = "resource",
        rarity: str = "common",
        value: Decimal = Decimal("0.00"),
        description: Optional[str] = None,
    ) -> Item:
        record = await self.add(
            session,
            ItemRecord(name=name, item_type=item_type, rarity=rarity, value=value, description=description),
        )
        return self.to_item(record)

    async def get_or_create(
        self,
        session: AsyncSession,
        name: str,
        *,
        item_type: str = "resource",
        rarity: str = "common",
        value: Decimal = Decimal("0.00"),
        description: Optional[str] = None,
    ) -> Item:
        """Catalog entry by name, inserted under a SAVEPOINT when missing."""
        existing = await self.find_one_where(session, ItemRecord.name == name)
        if existing is not None:
            return self.to_item(existing)

        record = ItemRecord(name=name, item_type=item_type, rarity=rarity, value=value, description=description)
        try:
            async with session.begin_nested():
                session.add(record)
        except IntegrityError:
            winner = await self.find_one_where(session, ItemRecord.name == name)
            if winner is None:
                raise ConflictError(
                    "Item creation conflicted, please try again",
                    details={"name": name},
                    error_code="ITEM_CONFLICT",
                )
            return self.to_item(winner)
        return self.to_item(record)

    @staticmethod
    def to_item(record: ItemRecord) -> Item:
        return Item(
            id=record.id,
            name=record.name,
            item_type=record.item_type,
            rarity=record.rarity,
            value=Decimal(record.value),
            description=record.description,
        )


class InventoryRepository(BaseRepository[InventoryRecord]):
    def __init__(self) -> None:
        super().__init__(InventoryRecord, logger)

    async def _find(self, session: AsyncSession, player_id: int, item_id: int) -> Optional[InventoryRecord]:
        return await self.find_one_where(
            session,
            InventoryRecord.player_id == player_id,
            InventoryRecord.item_id == item_id,
            for_update=True,
        )

    async def get_quantity(self, session: AsyncSession, player_id: int, item_id: int) -> int:
        """Quantity held; 0 when there is no row."""
        record = await self._find(session, player_id, item_id)
        return record.quantity if record is not None else 0

    async def adjust(self, session: AsyncSession, player_id: int, item_id: int, delta: int) -> int:
        """Apply a signed change and return the new quantity."""
        record = await self._find(session, player_id, item_id)
        current = record.quantity if record is not None else 0
        quantity = current + delta

        if quantity < 0:
            raise InvariantViolation(
                f"inventory of item {item_id} for player {player_id} would go negative ({quantity})",
                field="quantity",
            )

        if record is None:
            if quantity > 0:
                await self.add(session, InventoryRecord(player_id=player_id, item_id=item_id, quantity=quantity))
        elif quantity == 0:
            await self.delete(session, record)
        else:
            record.quantity = quantity
            await session.flush()

        self.log.debug(
            "Inventory adjusted",
            extra={"player_id": player_id, "item_id": item_id, "delta": delta, "quantity": quantity},
        )
        return quantity

    async def list_for_player(self, session: AsyncSession, player_id: int) -> List[InventoryEntry]:
        records = await self.find_many_where(
            session,
            InventoryRecord.player_id == player_id,
            order_by=(InventoryRecord.item_id,),
        )
        return [InventoryEntry(player_id=r.player_id, item_id=r.item_id, quantity=r.quantity) for r in records]


class MarketRepository(BaseRepository[MarketListingRecord]):
    def __init__(self) -> None:
        super().__init__(MarketListingRecord, logger)

    async def create(self, session: AsyncSession, listing: MarketListing) -> None:
        await self.add(
            session,
            MarketListingRecord(
                id=listing.id,
                seller_id=listing.seller_id,
                item_id=listing.item_id,
                quantity=listing.quantity,
                price_per_unit=listing.price_per_unit,
                total_price=listing.total_price,
                created_at=listing.created_at,
                expires_at=listing.expires_at,
                is_active=listing.is_active,
            ),
        )

    async def load(self, session: AsyncSession, listing_id: str) -> MarketListing:
        record = await self.find_one_where(session, MarketListingRecord.id == listing_id)
        if record is None:
            raise NotFoundError("Listing", listing_id)
        return self.to_listing(record)

    async def deactivate(self, session: AsyncSession, listing_id: str, at: datetime) -> bool:
        """Flip an active listing to inactive. True only for the caller that flipped it."""
        stmt = (
            update(MarketListingRecord)
            .where(
                MarketListingRecord.id == listing_id,
                MarketListingRecord.is_active.is_(True),
            )
            .values(is_active=False, closed_at=at)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        won = result.rowcount == 1

        self.log.debug("Listing deactivate", extra={"listing_id": listing_id, "won": won})
        return won

    async def list_active(
        self,
        session: AsyncSession,
        limit: Optional[int] = 20,
        offset: int = 0,
        *,
        now: Optional[datetime] = None,
        item_id: Optional[int] = None,
    ) -> List[MarketListing]:
        """Active listings, newest first. With `now`, listings already past expiry are skipped."""
        conditions = [MarketListingRecord.is_active.is_(True)]
        if now is not None:
            conditions.append(MarketListingRecord.expires_at > now)
        if item_id is not None:
            conditions.append(MarketListingRecord.item_id == item_id)

        records = await self.find_many_where(
            session,
            *conditions,
            order_by=(MarketListingRecord.created_at.desc(), MarketListingRecord.id),
            limit=limit,
            offset=offset,
        )
        return [self.to_listing(record) for record in records]

    async def list_expired(self, session: AsyncSession, now: datetime) -> List[MarketListing]:
        records = await self.find_many_where(
            session,
            MarketListingRecord.is_active.is_(True),
            MarketListingRecord.expires_at <= now,
            order_by=(MarketListingRecord.expires_at, MarketListingRecord.id),
        )
        return [self.to_listing(record) for record in records]

    async def list_by_seller(
        self,
        session: AsyncSession,
        seller_id: int,
        *,
        active_only: bool = True,
    ) -> List[MarketListing]:
        conditions = [MarketListingRecord.seller_id == seller_id]
        if active_only:
            conditions.append(MarketListingRecord.is_active.is_(True))
        records = await self.find_many_where(
            session,
            *conditions,
            order_by=(MarketListingRecord.created_at.desc(), MarketListingRecord.id),
        )
        return [self.to_listing(record) for record in records]

    @staticmethod
    def to_listing(record: MarketListingRecord) -> MarketListing:
        return MarketListing(
            listing_id=record.id,
            seller_id=record.seller_id,
            item_id=record.item_id,
            quantity=record.quantity,
            price_per_unit=Decimal(record.price_per_unit),
            total_price=Decimal(record.total_price),
            created_at=record.created_at,
            expires_at=record.expires_at,
            is_active=record.is_active,
            item_name=record.item.name if record.item is not None else None,
        )
