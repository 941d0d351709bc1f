"""
Integration Tests for GameService
=================================

Purpose
-------
Run every player-facing command against a real SQLite database with a
manual clock and scripted randomness.

Test Coverage
-------------
- Registration and starter kit
- Explore / scan / jump costs, discovery and rollback on failure
- Battle settlement, cooldown and defeated ships
- Market listing, purchase, expiry sweep and reads
- Domain events published only after commit

Testing Strategy
----------------
- Fresh SQLite file per test (`database` fixture)
- Combat variation and crits disabled so battle outcomes are exact
- State is checked by re-reading through the service, not by trusting
  return values alone
"""

import asyncio
from decimal import Decimal

import pytest

from nexium.core.config.manager import ConfigManager
from nexium.core.event.types import GameEvent
from nexium.domain.exceptions import (
    CooldownActiveError,
    InsufficientResourcesError,
    ListingUnavailableError,
    NotFoundError,
    PreconditionError,
    SelfTradeError,
    ShipDefeatedError,
    ValidationError,
)
from nexium.domain.models.battle import BattleSide
from nexium.domain.models.sector import Coordinate
from nexium.domain.models.ship import ShipDelta

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest.fixture
def config_manager() -> ConfigManager:
    """Exact combat: no damage variation, no critical hits."""
    return ConfigManager.from_dict({"combat": {"damage_variation": 0, "crit_chance": 0.0}})


@pytest.fixture
async def pilots(game_service):
    alice = await game_service.register_player("ext-alice", "alice")
    bob = await game_service.register_player("ext-bob", "bob")
    return alice.player.id, bob.player.id


async def inventory_of(game_service, player_id):
    profile = await game_service.profile(player_id)
    return {entry.item_id: entry.quantity for entry in profile.inventory}


# ============================================================================
# REGISTRATION
# ============================================================================


class TestRegistration:
    async def test_starter_kit(self, game_service):
        profile = await game_service.register_player("ext-1", " vega ")

        assert profile.player.username == "vega"
        assert profile.player.currency == Decimal("1000.00")
        assert profile.player.energy == 100
        assert profile.ship.name == "vega's Explorer"
        assert (profile.ship.hull, profile.ship.shields, profile.ship.fuel) == (100, 50, 100)
        assert [(entry.item_id, entry.quantity) for entry in profile.inventory] == [(1, 5), (2, 3), (3, 1)]

    async def test_starter_items_are_shared(self, game_service):
        await game_service.register_player("ext-1", "vega")
        profile = await game_service.register_player("ext-2", "rigel", ship_name="Dawn Treader")

        assert profile.ship.name == "Dawn Treader"
        assert [entry.item_id for entry in profile.inventory] == [1, 2, 3]

    async def test_duplicate_external_id(self, game_service):
        await game_service.register_player("ext-1", "vega")

        with pytest.raises(PreconditionError) as exc_info:
            await game_service.register_player("ext-1", "vega again")
        assert exc_info.value.error_code == "PLAYER_EXISTS"

    async def test_blank_username(self, game_service):
        with pytest.raises(ValidationError):
            await game_service.register_player("ext-1", "   ")


# ============================================================================
# EXPLORATION
# ============================================================================


class TestExplore:
    async def test_explore_spends_energy_and_discovers(self, game_service, pilots, recorder):
        alice, _ = pilots

        report = await game_service.explore(alice)

        assert report.player.energy == 90
        assert report.outcome.discovery is True
        assert report.outcome.sector.discovered_by == alice
        assert report.outcome.sector.visit_count == 1
        discovered = recorder.named(GameEvent.SECTOR_DISCOVERED.value)
        assert len(discovered) == 1
        assert discovered[0]["discovered_by"] == alice

        profile = await game_service.profile(alice)
        assert profile.sectors_discovered == 1
        assert profile.player.energy == 90

    async def test_energy_runs_out_then_regenerates(self, game_service, pilots, clock):
        alice, _ = pilots
        for _ in range(10):
            await game_service.explore(alice)

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await game_service.explore(alice)
        assert exc_info.value.error_code == "INSUFFICIENT_ENERGY"

        clock.advance(minutes=10)
        report = await game_service.explore(alice)

        assert report.energy_restored == 10
        assert report.player.energy == 0

    async def test_concurrent_explores_for_one_player_serialize(self, game_service, pilots):
        alice, _ = pilots

        await asyncio.gather(game_service.explore(alice), game_service.explore(alice))

        assert (await game_service.profile(alice)).player.energy == 80


class TestScan:
    async def test_scan_charts_three_undiscovered_sectors(self, game_service, database, pilots, recorder):
        alice, _ = pilots

        report = await game_service.scan(alice)

        assert report.player.energy == 95
        assert len(report.outcome.detections) == 3
        assert all(sector.discovered_by is None for sector in report.outcome.sectors)
        assert all(sector.visit_count == 0 for sector in report.outcome.sectors)
        assert recorder.named(GameEvent.SECTOR_DISCOVERED.value) == []
        async with database.session() as session:
            assert await game_service.sectors.count(session) == 3
            for sector in report.outcome.sectors:
                record = await game_service.sectors.get_by_coordinate(session, sector.coordinate)
                assert record.discovered_by is None


class TestJump:
    async def test_malformed_coordinates(self, game_service, pilots):
        alice, _ = pilots

        with pytest.raises(ValidationError):
            await game_service.jump(alice, "X5000:Y0:Z0")
        with pytest.raises(ValidationError):
            await game_service.jump(alice, "north")

    async def test_successful_jump(self, game_service, database, pilots, rng):
        alice, _ = pilots
        rng.randoms.append(0.05)

        report = await game_service.jump(alice, "X30:Y40:Z0")

        assert report.outcome.success is True
        assert report.outcome.discovery is True
        assert report.player.energy == 85
        assert report.ship.fuel == 80
        async with database.session() as session:
            record = await game_service.sectors.get_by_coordinate(session, Coordinate(30, 40, 0))
            assert record.discovered_by == alice
            assert record.visit_count == 1

    async def test_failed_jump(self, game_service, database, pilots, rng):
        """Half energy, some fuel and hull; the sector is charted but not discovered."""
        alice, _ = pilots
        rng.randoms.append(0.99)

        report = await game_service.jump(alice, "X300:Y400:Z0")

        assert report.outcome.success is False
        assert report.player.energy == 75
        assert report.ship.fuel == 90
        assert report.ship.hull == 90
        async with database.session() as session:
            record = await game_service.sectors.get_by_coordinate(session, Coordinate(300, 400, 0))
            assert record.discovered_by is None
            assert record.visit_count == 0

    async def test_low_fuel_rolls_back(self, game_service, database, pilots):
        alice, _ = pilots
        async with database.transaction() as session:
            ship = await game_service.ships.load_active(session, alice)
            await game_service.ships.apply_delta(session, ship.id, ShipDelta(fuel=-85))

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await game_service.jump(alice, "X1:Y1:Z1")

        assert exc_info.value.error_code == "INSUFFICIENT_FUEL"
        assert (await game_service.profile(alice)).player.energy == 100
        async with database.session() as session:
            assert await game_service.sectors.get_by_coordinate(session, Coordinate(1, 1, 1)) is None


# ============================================================================
# COMBAT
# ============================================================================


class TestBattle:
    """Default ships deal exactly 13 per hit with variation and crits off."""

    async def test_round_cap_battle(self, game_service, pilots, recorder):
        alice, bob = pilots

        report = await game_service.battle(alice, bob)

        battle = report.outcome
        assert battle.result.rounds == 10
        assert battle.result.decided_by_round_cap is True
        assert battle.winner_id == alice
        assert battle.currency_transferred == Decimal("50")
        assert report.player.currency == Decimal("1050.00")
        assert report.player.energy == 80
        assert report.player.total_battles_won == 1
        assert report.ship.hull == 20

        bob_profile = await game_service.profile(bob)
        assert bob_profile.player.currency == Decimal("950.00")
        assert bob_profile.ship.hull == 20
        assert bob_profile.ship.shields == 50
        assert bob_profile.recent_battles == 1

        completed = recorder.named(GameEvent.BATTLE_COMPLETED.value)
        assert completed[0]["winner_id"] == alice

    async def test_battle_sequence(self, game_service, pilots, clock):
        alice, bob = pilots
        await game_service.battle(alice, bob)

        with pytest.raises(CooldownActiveError):
            await game_service.battle(alice, bob)
        assert (await game_service.profile(alice)).player.energy == 80

        revenge = await game_service.battle(bob, alice)
        assert revenge.outcome.result.winner is BattleSide.ATTACKER
        assert revenge.outcome.result.rounds == 6
        assert revenge.outcome.currency_transferred == Decimal("52")
        assert revenge.player.currency == Decimal("1002.00")
        assert revenge.ship.hull == 5

        alice_profile = await game_service.profile(alice)
        assert alice_profile.player.currency == Decimal("998.00")
        assert alice_profile.ship.hull == 0

        clock.advance(seconds=301)
        with pytest.raises(ShipDefeatedError) as exc_info:
            await game_service.battle(alice, bob)
        assert exc_info.value.role == "attacker"

    async def test_cannot_battle_yourself(self, game_service, pilots):
        alice, _ = pilots

        with pytest.raises(SelfTradeError):
            await game_service.battle(alice, alice)

    async def test_battle_needs_energy(self, game_service, pilots, clock):
        alice, bob = pilots
        for _ in range(9):
            await game_service.explore(alice)

        with pytest.raises(InsufficientResourcesError):
            await game_service.battle(alice, bob)

    async def test_unknown_defender(self, game_service, pilots):
        alice, _ = pilots

        with pytest.raises(NotFoundError):
            await game_service.battle(alice, 999)

    async def test_leaderboard(self, game_service, pilots):
        alice, bob = pilots
        await game_service.battle(alice, bob)

        board = await game_service.leaderboard(2)

        assert [player.id for player in board] == [alice, bob]
        with pytest.raises(ValidationError):
            await game_service.leaderboard(0)


# ============================================================================
# MARKET
# ============================================================================


class TestMarket:
    async def test_list_moves_items_out_of_inventory(self, game_service, pilots, recorder):
        alice, _ = pilots

        report = await game_service.list_item(alice, 1, 2, "12.50")

        listing = report.outcome
        assert listing.total_price == Decimal("25.00")
        assert listing.item_name == "Basic Fuel Cell"
        assert (await inventory_of(game_service, alice))[1] == 3
        assert recorder.named(GameEvent.LISTING_CREATED.value)[0]["listing_id"] == listing.id
        assert [mine.id for mine in await game_service.my_listings(alice)] == [listing.id]

    async def test_purchase_settles(self, game_service, pilots, recorder):
        alice, bob = pilots
        listing = (await game_service.list_item(alice, 1, 2, "12.50")).outcome

        report = await game_service.purchase(bob, listing.id)

        assert report.player.currency == Decimal("975.00")
        assert (await game_service.profile(alice)).player.currency == Decimal("1025.00")
        assert (await inventory_of(game_service, bob))[1] == 7
        sold = recorder.named(GameEvent.LISTING_SOLD.value)
        assert sold[0]["buyer_id"] == bob
        assert await game_service.my_listings(alice) == []

    async def test_second_purchase_fails(self, game_service, pilots):
        alice, bob = pilots
        listing = (await game_service.list_item(alice, 1, 1, "1.00")).outcome
        await game_service.purchase(bob, listing.id)

        with pytest.raises(ListingUnavailableError):
            await game_service.purchase(bob, listing.id)
        assert (await game_service.profile(bob)).player.currency == Decimal("999.00")

    async def test_concurrent_buyers_settle_once(self, game_service, pilots, recorder):
        alice, bob = pilots
        carol = (await game_service.register_player("ext-carol", "carol")).player.id
        listing = (await game_service.list_item(alice, 1, 1, "10.00")).outcome

        results = await asyncio.gather(
            game_service.purchase(bob, listing.id),
            game_service.purchase(carol, listing.id),
            return_exceptions=True,
        )

        wins = [result for result in results if not isinstance(result, Exception)]
        losses = [result for result in results if isinstance(result, ListingUnavailableError)]
        assert len(wins) == 1
        assert len(losses) == 1
        assert (await game_service.profile(alice)).player.currency == Decimal("1010.00")
        assert len(recorder.named(GameEvent.LISTING_SOLD.value)) == 1
        winner = recorder.named(GameEvent.LISTING_SOLD.value)[0]["buyer_id"]
        loser = carol if winner == bob else bob
        assert (await game_service.profile(winner)).player.currency == Decimal("990.00")
        assert (await game_service.profile(loser)).player.currency == Decimal("1000.00")
        assert (await inventory_of(game_service, loser))[1] == 5
        assert (await inventory_of(game_service, winner))[1] == 6

    async def test_self_purchase(self, game_service, pilots):
        alice, _ = pilots
        listing = (await game_service.list_item(alice, 1, 1, "1.00")).outcome

        with pytest.raises(SelfTradeError):
            await game_service.purchase(alice, listing.id)

    async def test_insufficient_currency_changes_nothing(self, game_service, pilots):
        alice, bob = pilots
        listing = (await game_service.list_item(alice, 3, 1, "5000.00")).outcome

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await game_service.purchase(bob, listing.id)

        assert exc_info.value.error_code == "INSUFFICIENT_CURRENCY"
        assert (await game_service.profile(bob)).player.currency == Decimal("1000.00")
        assert [active.id for active in await game_service.browse_market()] == [listing.id]

    async def test_exact_funds(self, game_service, pilots):
        alice, bob = pilots
        listing = (await game_service.list_item(alice, 2, 1, "1000.00")).outcome

        report = await game_service.purchase(bob, listing.id)

        assert report.player.currency == Decimal("0.00")

    async def test_unknown_listing(self, game_service, pilots):
        _, bob = pilots

        with pytest.raises(NotFoundError) as exc_info:
            await game_service.purchase(bob, "no-such-listing")
        assert exc_info.value.error_code == "LISTING_NOT_FOUND"

    async def test_cannot_list_more_than_held(self, game_service, pilots):
        alice, _ = pilots

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await game_service.list_item(alice, 3, 2, "1.00")

        assert exc_info.value.error_code == "INSUFFICIENT_INVENTORY"
        assert (await inventory_of(game_service, alice))[3] == 1

    async def test_unknown_item(self, game_service, pilots):
        alice, _ = pilots

        with pytest.raises(NotFoundError):
            await game_service.list_item(alice, 42, 1, "1.00")

    async def test_listing_the_whole_stack_removes_the_row(self, game_service, pilots):
        alice, _ = pilots

        await game_service.list_item(alice, 3, 1, "9.99")

        assert 3 not in await inventory_of(game_service, alice)


class TestExpiry:
    async def test_sweep_returns_items(self, game_service, pilots, clock, recorder):
        alice, _ = pilots
        listing = (await game_service.list_item(alice, 1, 2, "3.00")).outcome
        clock.advance(days=7)

        closed = await game_service.expire_listings()

        assert [expired.id for expired in closed] == [listing.id]
        assert (await inventory_of(game_service, alice))[1] == 5
        assert recorder.named(GameEvent.LISTING_EXPIRED.value)[0]["listing_id"] == listing.id
        assert await game_service.expire_listings() == []

    async def test_expired_listing_cannot_be_bought_before_sweep(self, game_service, pilots, clock):
        alice, bob = pilots
        listing = (await game_service.list_item(alice, 1, 1, "3.00")).outcome
        clock.advance(days=7, seconds=1)

        with pytest.raises(ListingUnavailableError) as exc_info:
            await game_service.purchase(bob, listing.id)

        assert exc_info.value.details["reason"] == "expired"
        assert await game_service.browse_market() == []
        assert [mine.id for mine in await game_service.my_listings(alice)] == [listing.id]


class TestMarketReads:
    async def test_browse_trends_and_popular(self, game_service, pilots, clock):
        alice, bob = pilots
        await game_service.list_item(alice, 1, 1, "10.00")
        clock.advance(seconds=1)
        await game_service.list_item(bob, 1, 1, "12.00")
        clock.advance(seconds=1)
        await game_service.list_item(bob, 2, 1, "4.00")

        newest_first = await game_service.browse_market()
        only_fuel = await game_service.browse_market(item_id=1)
        trends = await game_service.market_trends()
        popular = await game_service.popular_items()

        assert [listing.item_id for listing in newest_first] == [2, 1, 1]
        assert len(only_fuel) == 2
        assert set(trends) == {1, 2}
        assert popular[0].item_id == 1
        assert popular[0].listings == 2
        assert popular[0].average_price == Decimal("11.00")

    async def test_browse_validates_paging(self, game_service):
        with pytest.raises(ValidationError):
            await game_service.browse_market(limit=0)
        with pytest.raises(ValidationError):
            await game_service.browse_market(offset=-1)


# ============================================================================
# EVENTS
# ============================================================================


class TestEventsAfterCommit:
    async def test_listener_sees_committed_state(self, game_service, database, event_bus, pilots):
        alice, bob = pilots
        listing = (await game_service.list_item(alice, 1, 1, "2.00")).outcome
        seen = []

        async def check_listing(payload):
            async with database.session() as session:
                stored = await game_service.market.load(session, payload["listing_id"])
            seen.append(stored.is_active)

        event_bus.subscribe(GameEvent.LISTING_SOLD.value, check_listing, identifier="check-listing")
        await game_service.purchase(bob, listing.id)

        assert seen == [False]

    async def test_failed_command_publishes_nothing(self, game_service, pilots, recorder):
        alice, bob = pilots
        listing = (await game_service.list_item(alice, 1, 1, "5000.00")).outcome
        before = list(recorder.names)

        with pytest.raises(InsufficientResourcesError):
            await game_service.purchase(bob, listing.id)

        assert recorder.names == before
