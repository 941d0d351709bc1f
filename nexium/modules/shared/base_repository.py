"""
Base Repository Pattern

Purpose
-------
Type-safe generic data access over SQLAlchemy 2.0 async sessions. Feature
repositories (sectors, players, ships, inventory, market, battle log)
subclass it and add their own queries.

Design Notes
------------
- The session is passed per call; repositories never open, commit or roll
  back transactions (DatabaseService.transaction owns that).
- `get_for_update` / `for_update=True` issue SELECT ... FOR UPDATE, which is
  a no-op on SQLite (serialized by BEGIN IMMEDIATE instead).
- Every query logs at DEBUG with the model name and result shape.
- No business rules live here; entity invariants are checked by the domain
  types the subclasses hydrate.

Usage
-----
    class ShipRepository(BaseRepository[ShipRow]):
        async def find_active(self, session, owner_id):
            return await self.find_one_where(
                session, ShipRow.owner_id == owner_id, ShipRow.is_active.is_(True)
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic base repository.

    Type Parameters:
        T: The ORM row class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    @property
    def model_name(self) -> str:
        return self.model_class.__name__

    async def get(self, session: AsyncSession, id_value: Any) -> Optional[T]:
        """Get a single row by primary key (no lock)."""
        instance = await session.get(self.model_class, id_value)

        self.log.debug(
            f"Repository.get: {self.model_name}",
            extra={"model": self.model_name, "id": id_value, "found": instance is not None},
        )
        return instance

    async def get_for_update(self, session: AsyncSession, id_value: Any) -> Optional[T]:
        """
        Get a single row by primary key with SELECT FOR UPDATE.

        Always hits the database so a row already in the identity map is
        refreshed under the lock.
        """
        stmt = (
            select(self.model_class)
            .where(self.model_class.id == id_value)  # type: ignore[attr-defined]
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.get_for_update: {self.model_name}",
            extra={
                "model": self.model_name,
                "id": id_value,
                "found": instance is not None,
                "locked": True,
            },
        )
        return instance

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[T]:
        """
        Find a single row matching conditions.

        Args:
            session: Database session
            *conditions: SQLAlchemy filter conditions
            for_update: If True, use SELECT FOR UPDATE

        Returns:
            Row instance or None if not found
        """
        stmt = select(self.model_class).where(*conditions)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.find_one_where: {self.model_name}",
            extra={"model": self.model_name, "found": instance is not None, "locked": for_update},
        )
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        for_update: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[T]:
        """
        Find rows matching conditions.

        Args:
            session: Database session
            *conditions: SQLAlchemy filter conditions
            order_by: Columns / expressions to order by
            for_update: If True, use SELECT FOR UPDATE
            limit: Optional maximum number of results
            offset: Optional number of rows to skip

        Returns:
            List of row instances
        """
        stmt = select(self.model_class).where(*conditions)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.find_many_where: {self.model_name}",
            extra={
                "model": self.model_name,
                "found_count": len(instances),
                "locked": for_update,
                "limit": limit,
                "offset": offset,
            },
        )
        return instances

    async def count(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        result = await session.execute(stmt)
        count = result.scalar_one()

        self.log.debug(
            f"Repository.count: {self.model_name}",
            extra={"model": self.model_name, "count": count},
        )
        return count

    async def add(self, session: AsyncSession, instance: T) -> T:
        """
        Add a new row and flush so database defaults and the primary key
        are populated.
        """
        session.add(instance)
        await session.flush()

        self.log.debug(
            f"Repository.add: {self.model_name}",
            extra={"model": self.model_name, "id": getattr(instance, "id", None)},
        )
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        await session.delete(instance)
        await session.flush()

        self.log.debug(
            f"Repository.delete: {self.model_name}",
            extra={"model": self.model_name, "id": getattr(instance, "id", None)},
        )
