"""
Integration Tests for the Repositories
======================================

Purpose
-------
Exercise the data-access layer against SQLite: get-or-create under a
SAVEPOINT, inventory bookkeeping, conditional listing deactivation and
the transaction error mapping in DatabaseService.

Testing Strategy
----------------
- Fresh SQLite file per test
- Each step runs in its own transaction; assertions re-read in a new
  session so they see committed state only
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from nexium.domain.exceptions import ConflictError, InvariantViolation
from nexium.domain.models.player import PlayerDelta
from nexium.domain.models.sector import Coordinate, SectorDraft, SectorType
from nexium.modules.economy.repository import InventoryRepository, ItemRepository, MarketRepository
from nexium.modules.player.repository import PlayerRepository
from nexium.modules.world.repository import SectorRepository, WorldSession


pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def draft(x: int = 1, y: int = 2, z: int = 3) -> SectorDraft:
    return SectorDraft(
        coordinate=Coordinate(x, y, z),
        name="Vega Reach",
        sector_type=SectorType.NEBULA,
        difficulty=3,
    )


async def create_player(database, external_id: str = "ext-1") -> int:
    async with database.transaction() as session:
        player = await PlayerRepository().create(
            session,
            external_id,
            external_id,
            currency=Decimal("1000.00"),
            max_energy=100,
            at=NOW,
        )
    return player.id


async def create_item(database, name: str = "Iron Ore") -> int:
    async with database.transaction() as session:
        item = await ItemRepository().create(session, name)
    return item.id


# ============================================================================
# SECTORS
# ============================================================================


class TestSectorRepository:
    async def test_create_if_absent_is_idempotent(self, database):
        repo = SectorRepository()

        async with database.transaction() as session:
            first, created = await repo.create_if_absent(session, draft())
        async with database.transaction() as session:
            second, created_again = await repo.create_if_absent(session, draft())

        assert created is True
        assert created_again is False
        assert second.id == first.id

    async def test_lost_race_returns_winner(self, database, monkeypatch):
        """The existence check misses, the insert hits the unique constraint."""
        repo = SectorRepository()
        async with database.transaction() as session:
            winner, _ = await repo.create_if_absent(session, draft())

        real_lookup = repo.get_by_coordinate
        calls = []

        async def stale_then_real(session, coordinate):
            calls.append(coordinate)
            if len(calls) == 1:
                return None
            return await real_lookup(session, coordinate)

        monkeypatch.setattr(repo, "get_by_coordinate", stale_then_real)
        async with database.transaction() as session:
            record, created = await repo.create_if_absent(session, draft())

        assert created is False
        assert record.id == winner.id
        assert len(calls) == 2

    async def test_unresolvable_race_is_a_conflict(self, database, monkeypatch):
        repo = SectorRepository()
        async with database.transaction() as session:
            await repo.create_if_absent(session, draft())

        async def always_missing(session, coordinate):
            return None

        monkeypatch.setattr(repo, "get_by_coordinate", always_missing)
        with pytest.raises(ConflictError) as exc_info:
            async with database.transaction() as session:
                await repo.create_if_absent(session, draft())

        assert exc_info.value.error_code == "SECTOR_CONFLICT"

    async def test_world_session_discovery_and_visits(self, database):
        player_id = await create_player(database)
        repo = SectorRepository()

        async with database.transaction() as session:
            world = WorldSession(session, repo)
            sector, created = await world.create_sector_if_absent(draft(), discovered_by=player_id, at=NOW)
            await world.record_visit(sector.id, NOW)

        async with database.session() as session:
            stored = SectorRepository.to_entity(await repo.get_by_coordinate(session, Coordinate(1, 2, 3)))
            discovered = [entry.id for entry in await repo.discovered_by(session, player_id)]

        assert created is True
        assert [event.event_name for event in sector.pull_domain_events()] == ["sector_discovered"]
        assert stored.discovered_by == player_id
        assert stored.discovered_at == NOW
        assert stored.visit_count == 1
        assert discovered == [stored.id]


# ============================================================================
# ITEMS AND INVENTORY
# ============================================================================


class TestItemRepository:
    async def test_get_or_create_reuses_by_name(self, database):
        repo = ItemRepository()

        async with database.transaction() as session:
            first = await repo.get_or_create(session, "Hull Repair Kit", item_type="repair")
            second = await repo.get_or_create(session, "Hull Repair Kit", item_type="ignored")

        assert second.id == first.id
        assert second.item_type == "repair"

    async def test_find_by_name(self, database):
        item_id = await create_item(database, "Quantum Crystal")

        async with database.session() as session:
            found = await ItemRepository().find_by_name(session, "Quantum Crystal")
            missing = await ItemRepository().find_by_name(session, "Dark Matter")

        assert found.id == item_id
        assert missing is None


class TestInventoryRepository:
    async def test_row_removed_at_zero(self, database):
        player_id = await create_player(database)
        item_id = await create_item(database)
        repo = InventoryRepository()

        async with database.transaction() as session:
            assert await repo.adjust(session, player_id, item_id, 3) == 3
            assert await repo.adjust(session, player_id, item_id, -3) == 0

        async with database.session() as session:
            assert await repo.get_quantity(session, player_id, item_id) == 0
            assert await repo.list_for_player(session, player_id) == []

    async def test_negative_quantity_is_rejected(self, database):
        player_id = await create_player(database)
        item_id = await create_item(database)

        with pytest.raises(InvariantViolation):
            async with database.transaction() as session:
                await InventoryRepository().adjust(session, player_id, item_id, -1)


# ============================================================================
# MARKET
# ============================================================================


class TestMarketRepository:
    async def test_deactivate_only_once(self, database, make_listing):
        seller_id = await create_player(database)
        item_id = await create_item(database)
        repo = MarketRepository()
        async with database.transaction() as session:
            await repo.create(session, make_listing("listing-1", seller_id=seller_id, item_id=item_id))

        async with database.transaction() as session:
            first = await repo.deactivate(session, "listing-1", NOW)
        async with database.transaction() as session:
            second = await repo.deactivate(session, "listing-1", NOW)

        assert (first, second) == (True, False)
        async with database.session() as session:
            assert (await repo.load(session, "listing-1")).is_active is False

    async def test_active_and_expired_queries(self, database, make_listing):
        seller_id = await create_player(database)
        item_id = await create_item(database)
        repo = MarketRepository()
        async with database.transaction() as session:
            await repo.create(session, make_listing("old", seller_id=seller_id, item_id=item_id))
            await repo.create(
                session,
                make_listing("new", seller_id=seller_id, item_id=item_id, created_at=NOW + timedelta(days=1)),
            )

        later = NOW + timedelta(days=7)
        async with database.session() as session:
            everything = await repo.list_active(session)
            still_open = await repo.list_active(session, now=later)
            expired = await repo.list_expired(session, later)
            mine = await repo.list_by_seller(session, seller_id)

        assert [listing.id for listing in everything] == ["new", "old"]
        assert [listing.id for listing in still_open] == ["new"]
        assert [listing.id for listing in expired] == ["old"]
        assert [listing.id for listing in mine] == ["new", "old"]
        assert everything[0].item_name == "Iron Ore"


# ============================================================================
# TRANSACTIONS
# ============================================================================


class TestTransactionMapping:
    async def test_failed_transaction_rolls_back_every_write(self, database):
        player_id = await create_player(database)
        item_id = await create_item(database)
        players = PlayerRepository()

        with pytest.raises(InvariantViolation):
            async with database.transaction("rollback-check") as session:
                await players.apply_delta(session, player_id, PlayerDelta(currency=Decimal("100")))
                await InventoryRepository().adjust(session, player_id, item_id, -5)

        async with database.session() as session:
            assert (await players.load(session, player_id)).currency == Decimal("1000.00")
        assert database.stats()["rolled_back"] >= 1

    async def test_integrity_error_becomes_write_conflict(self, database):
        await create_player(database, "ext-dup")

        with pytest.raises(ConflictError) as exc_info:
            await create_player(database, "ext-dup")

        assert exc_info.value.error_code == "WRITE_CONFLICT"
        assert exc_info.value.is_retryable is True
