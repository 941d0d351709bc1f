"""
Unit Tests for the Nexium Domain Models
=======================================

Purpose
-------
Test the invariants and state transitions of the domain models without a
database.

Test Coverage
-------------
- Coordinate parsing, bounds and clamping
- Ship and player pools under deltas
- Sector discovery and visit metadata
- Market listing totals and single deactivation
- Domain event buffering

Testing Strategy
----------------
- Unit tests (fast, no database)
- AAA pattern (Arrange, Act, Assert)
- Test one behavior per test
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from nexium.core.event.types import GameEvent
from nexium.domain.exceptions import InvariantViolation, ValidationError
from nexium.domain.models import (
    Coordinate,
    InventoryEntry,
    ListingStatus,
    MarketListing,
    PlayerDelta,
    ResourceKind,
    Sector,
    SectorDraft,
    SectorType,
    ShipDelta,
)
from tests.conftest import NOW


# ============================================================================
# COORDINATE TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestCoordinate:
    """Test the Coordinate value object."""

    def test_parse_canonical_form(self):
        """Test parsing the X:Y:Z key."""
        coordinate = Coordinate.parse("X-127:Y495:Z3")

        assert coordinate == Coordinate(-127, 495, 3)
        assert coordinate.key == "X-127:Y495:Z3"
        assert str(coordinate) == "X-127:Y495:Z3"

    @pytest.mark.parametrize("raw", ["", "1,2,3", "X1:Y2", "x1:y2:z3", "X1.5:Y2:Z3"])
    def test_parse_rejects_malformed(self, raw):
        """Test malformed input raises ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            Coordinate.parse(raw)

        assert exc_info.value.error_code == "VALIDATION_COORDINATES"

    @pytest.mark.parametrize("raw", ["X1001:Y0:Z0", "X0:Y-1001:Z0", "X0:Y0:Z101"])
    def test_parse_rejects_out_of_bounds(self, raw):
        """Test coordinates outside the universe raise ValidationError."""
        with pytest.raises(ValidationError):
            Coordinate.parse(raw)

    def test_bounds_are_inclusive(self):
        """Test the universe edge is a valid coordinate."""
        assert Coordinate(-1000, 1000, -100).key == "X-1000:Y1000:Z-100"

    def test_clamped(self):
        """Test clamping pulls each axis back to the edge."""
        assert Coordinate.clamped(1500, -2000, 150) == Coordinate(1000, -1000, 100)


# ============================================================================
# SHIP TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestShipState:
    """Test ShipState pools and deltas."""

    def test_apply_delta(self, make_ship):
        """Test applying a delta returns a new ship."""
        ship = make_ship()

        damaged = ship.apply(ShipDelta(hull=-30, fuel=-10, experience=5))

        assert damaged.hull == 70
        assert damaged.fuel == 90
        assert damaged.experience == 5
        assert ship.hull == 100

    def test_delta_below_zero_is_rejected(self, make_ship):
        """Test a delta that would drive hull negative raises."""
        with pytest.raises(InvariantViolation):
            make_ship(hull=10).apply(ShipDelta(hull=-11))

    @pytest.mark.parametrize(
        "overrides",
        [{"hull": 101}, {"shields": -1}, {"fuel": 150}, {"experience": -1}, {"level": 0}],
    )
    def test_invalid_state_is_rejected(self, make_ship, overrides):
        """Test pools outside their bounds raise."""
        with pytest.raises(InvariantViolation):
            make_ship(**overrides)

    def test_hull_set_to_floors_at_zero(self, make_ship):
        """Test hull_set_to never produces a negative hull."""
        ship = make_ship(hull=40)

        assert ship.apply(ship.hull_set_to(-15)).hull == 0
        assert ship.apply(ship.hull_set_to(25)).hull == 25

    def test_defeated_and_power(self, make_ship):
        """Test hull 0 means defeated and power sums the four stats."""
        ship = make_ship(hull=0)

        assert ship.is_defeated is True
        assert ship.power == 20 + 15 + 0 + 50

    def test_deltas_add(self):
        """Test deltas combine field by field."""
        total = ShipDelta(hull=-5, fuel=-10) + ShipDelta(hull=-3, experience=7)

        assert total == ShipDelta(hull=-8, fuel=-10, experience=7)


# ============================================================================
# PLAYER TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestPlayerState:
    """Test PlayerState currency, energy and counters."""

    def test_currency_is_quantized(self, make_player):
        """Test currency stays at two decimal places."""
        player = make_player().apply(PlayerDelta(currency=Decimal("0.5")))

        assert player.currency == Decimal("1000.50")
        assert str(player.currency) == "1000.50"

    def test_negative_currency_is_rejected(self, make_player):
        """Test spending more than held raises."""
        with pytest.raises(InvariantViolation):
            make_player(currency=Decimal("5.00")).apply(PlayerDelta(currency=Decimal("-5.01")))

    def test_energy_above_max_is_rejected(self, make_player):
        """Test energy cannot exceed max_energy."""
        with pytest.raises(InvariantViolation):
            make_player(energy=90).apply(PlayerDelta(energy=11))

    def test_float_currency_is_rejected(self, make_player):
        """Test currency must be a Decimal."""
        with pytest.raises(InvariantViolation):
            make_player(currency=10.0)

    def test_counters_and_timestamps(self, make_player):
        """Test lifetime counters and timestamps move with the delta."""
        later = NOW + timedelta(minutes=5)

        player = make_player().apply(
            PlayerDelta(sectors_explored=1, battles_won=2, energy_restored_at=later, active_at=later)
        )

        assert player.total_explored == 1
        assert player.total_battles_won == 2
        assert player.last_energy_restore == later
        assert player.last_active == later

    def test_empty_delta_returns_same_player(self, make_player):
        """Test an empty delta is a no-op."""
        player = make_player()
        assert player.apply(PlayerDelta()) is player

    def test_can_afford(self, make_player):
        player = make_player(currency=Decimal("10.00"))

        assert player.can_afford(Decimal("10.00")) is True
        assert player.can_afford(Decimal("10.01")) is False


# ============================================================================
# SECTOR TESTS
# ============================================================================


def _sector(**overrides) -> Sector:
    values = dict(
        sector_id=1,
        coordinate=Coordinate(1, 2, 3),
        name="Tau Reach",
        sector_type=SectorType.GAS_GIANT,
        difficulty=2,
        resources={ResourceKind.HELIUM_3: 90, ResourceKind.IRON: 60},
        hazards={},
    )
    values.update(overrides)
    return Sector(**values)


@pytest.mark.unit
@pytest.mark.domain
class TestSector:
    """Test Sector identity, discovery and visits."""

    def test_mark_discovered_emits_event(self):
        """Test discovery credits the player and buffers sector_discovered."""
        sector = _sector()

        sector.mark_discovered(7, NOW)

        assert sector.discovered_by == 7
        assert sector.discovered_at == NOW
        events = sector.pull_domain_events()
        assert [event.event_name for event in events] == [GameEvent.SECTOR_DISCOVERED.value]
        assert events[0].payload["coordinates"] == "X1:Y2:Z3"

    def test_discovery_happens_once(self):
        """Test a second discovery raises."""
        sector = _sector(discovered_by=3, discovered_at=NOW)

        with pytest.raises(InvariantViolation):
            sector.mark_discovered(7, NOW)

    def test_pull_clears_buffer(self):
        """Test events are drained exactly once."""
        sector = _sector()
        sector.mark_discovered(7, NOW)

        sector.pull_domain_events()

        assert sector.has_pending_events is False
        assert sector.pull_domain_events() == []

    def test_record_visit(self):
        sector = _sector()

        sector.record_visit(NOW)
        sector.record_visit(NOW + timedelta(hours=1))

        assert sector.visit_count == 2
        assert sector.last_visited == NOW + timedelta(hours=1)

    def test_first_resource_keeps_insertion_order(self):
        """Test 'first detected' follows insertion order."""
        sector = _sector()

        assert sector.first_resource() is ResourceKind.HELIUM_3
        assert sector.first_hazard() is None

    def test_resources_are_copies(self):
        """Test callers cannot mutate a sector's resource map."""
        sector = _sector()
        sector.resources[ResourceKind.PLATINUM] = 1

        assert ResourceKind.PLATINUM not in sector.resources

    def test_identity_equality(self):
        """Test sectors with the same id are equal."""
        assert _sector() == _sector(name="Other")
        assert _sector() != _sector(sector_id=2)

    @pytest.mark.parametrize("difficulty", [0, 6])
    def test_draft_difficulty_range(self, difficulty):
        """Test drafts outside difficulty 1..5 are rejected."""
        with pytest.raises(InvariantViolation):
            SectorDraft(Coordinate(0, 0, 0), "Void", SectorType.NEBULA, difficulty)


# ============================================================================
# MARKET TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestMarketListing:
    """Test MarketListing totals and deactivation."""

    def test_total_must_match(self):
        """Test a total that is not quantity x price raises."""
        with pytest.raises(InvariantViolation):
            MarketListing(
                "bad",
                seller_id=2,
                item_id=1,
                quantity=2,
                price_per_unit=Decimal("3.00"),
                total_price=Decimal("7.00"),
                created_at=NOW,
                expires_at=NOW + timedelta(days=7),
            )

    def test_close_as_sold_emits_event(self, make_listing):
        """Test closing a listing deactivates it and buffers listing_sold."""
        listing = make_listing()

        listing.close(ListingStatus.SOLD, buyer_id=9)

        assert listing.is_active is False
        events = listing.pull_domain_events()
        assert events[0].event_name == GameEvent.LISTING_SOLD.value
        assert events[0].payload["buyer_id"] == 9

    def test_close_as_expired_emits_event(self, make_listing):
        listing = make_listing()

        listing.close(ListingStatus.EXPIRED)

        assert listing.pull_domain_events()[0].event_name == GameEvent.LISTING_EXPIRED.value

    def test_close_twice_is_rejected(self, make_listing):
        """Test a listing is deactivated at most once."""
        listing = make_listing()
        listing.close(ListingStatus.SOLD, buyer_id=9)

        with pytest.raises(InvariantViolation):
            listing.close(ListingStatus.EXPIRED)

    def test_expiry_boundary(self, make_listing):
        """Test a listing is expired from expires_at onward."""
        listing = make_listing()

        assert listing.is_available(NOW) is True
        assert listing.is_expired(listing.expires_at) is True
        assert listing.is_available(listing.expires_at - timedelta(seconds=1)) is True

    def test_negative_inventory_is_rejected(self):
        with pytest.raises(InvariantViolation):
            InventoryEntry(player_id=1, item_id=1, quantity=-1)
