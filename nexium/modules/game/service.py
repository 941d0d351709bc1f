"""
Game Service
============

Purpose
-------
Applies engine output to persistent state. Every player-facing command
(register, explore, scan, jump, battle, list, purchase, expiry sweep,
profile and market reads) lands here.

Command Shape
-------------
For every mutating command:

1. Hold the per-player lock(s) (ascending id order).
2. Open ONE database transaction; lock the player rows.
3. Regenerate energy lazily, then check the command's cost.
4. Run the engine (pure computation plus sector get-or-create).
5. Apply deltas through the repositories, which re-check invariants.
6. Commit, then publish the domain events the entities buffered.

A failure at any step rolls the whole transaction back: no energy is spent
and no state changes are visible. Events are only published for committed
work.

Config Keys (defaults in parentheses)
-------------------------------------
combat.energy_cost (20), combat.cooldown_seconds (300),
combat.reward_fraction (0.05), player.starting_currency (1000.00),
player.max_energy (100), player.starting_items (three starter kits),
ship.starting_hull (100), ship.starting_shields (50),
ship.starting_attack (20), ship.starting_defense (15),
ship.starting_speed (10), ship.starting_fuel (100)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_FLOOR, Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from nexium.core.concurrency.locks import PlayerLockManager
from nexium.core.database.base import utc_now
from nexium.core.event.types import GameEvent
from nexium.core.logging.logger import LogContext
from nexium.domain.exceptions import (
    CooldownActiveError,
    InsufficientResourcesError,
    ListingUnavailableError,
    PreconditionError,
    SelfTradeError,
    ShipDefeatedError,
    ValidationError,
)
from nexium.domain.models.battle import BattleResult, BattleSide
from nexium.domain.models.exploration import ExplorationAction
from nexium.domain.models.market import (
    InventoryEntry,
    ListingStatus,
    MarketListing,
    MarketTrend,
    PopularItem,
)
from nexium.domain.models.player import PlayerDelta, PlayerState
from nexium.domain.models.sector import Coordinate
from nexium.domain.models.ship import ShipState
from nexium.modules.combat.engine import CombatEngine
from nexium.modules.combat.repository import BattleRepository
from nexium.modules.economy.energy import EnergyRegenerator
from nexium.modules.economy.engine import EconomyEngine
from nexium.modules.economy.repository import (
    InventoryRepository,
    ItemRepository,
    MarketRepository,
)
from nexium.modules.exploration.engine import ExplorationEngine
from nexium.modules.exploration.repository import ExplorationLogRepository
from nexium.modules.player.repository import PlayerRepository, ShipRepository
from nexium.modules.shared.base_service import BaseService
from nexium.modules.shared.random_source import RandomSource
from nexium.modules.universe.generator import UniverseGenerator
from nexium.modules.world.repository import SectorRepository, WorldSession

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from nexium.core.config.manager import ConfigManager
    from nexium.core.database.service import DatabaseService
    from nexium.core.event.bus import EventBus


DEFAULT_STARTING_ITEMS: List[Dict[str, Any]] = [
    {"name": "Basic Fuel Cell", "item_type": "fuel", "quantity": 5, "value": "10.00"},
    {"name": "Hull Repair Kit", "item_type": "repair", "quantity": 3, "value": "10.00"},
    {"name": "Scanner Upgrade", "item_type": "upgrade", "quantity": 1, "value": "10.00"},
]


# ============================================================================
# RESULTS
# ============================================================================


@dataclass(frozen=True)
class ActionReport:
    """What a mutating command did and where the acting player ended up."""

    action: str
    outcome: Any
    player: PlayerState
    ship: Optional[ShipState] = None
    energy_restored: int = 0

    def snapshot(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "outcome": self.outcome.snapshot(),
            "player": self.player.snapshot(),
            "ship": self.ship.snapshot() if self.ship is not None else None,
            "energy_restored": self.energy_restored,
        }


@dataclass(frozen=True)
class BattleReport:
    battle_id: int
    attacker_id: int
    defender_id: int
    winner_id: int
    currency_transferred: Decimal
    result: BattleResult

    def snapshot(self) -> Dict[str, Any]:
        return {
            "battle_id": self.battle_id,
            "attacker_id": self.attacker_id,
            "defender_id": self.defender_id,
            "winner_id": self.winner_id,
            "currency_transferred": str(self.currency_transferred),
            **self.result.snapshot(),
        }


@dataclass(frozen=True)
class PlayerProfile:
    player: PlayerState
    ship: ShipState
    inventory: List[InventoryEntry] = field(default_factory=list)
    sectors_discovered: int = 0
    recent_battles: int = 0

    def snapshot(self) -> Dict[str, Any]:
        return {
            "player": self.player.snapshot(),
            "ship": self.ship.snapshot(),
            "inventory": [
                {"item_id": entry.item_id, "quantity": entry.quantity} for entry in self.inventory
            ],
            "sectors_discovered": self.sectors_discovered,
            "recent_battles": self.recent_battles,
        }


# ============================================================================
# GameService
# ============================================================================


class GameService(BaseService):
    """
    Orchestrates engines, repositories, locks and events.

    Public Methods
    --------------
    - register_player(external_id, username, ship_name) -> PlayerProfile
    - explore(player_id) / scan(player_id) / jump(player_id, coordinates)
    - battle(attacker_id, defender_id) -> ActionReport
    - list_item(player_id, item_id, quantity, price_per_unit) -> ActionReport
    - purchase(buyer_id, listing_id) -> ActionReport
    - expire_listings() -> List[MarketListing]
    - browse_market / market_trends / popular_items / my_listings
    - profile(player_id) / leaderboard(limit)
    """

    def __init__(
        self,
        database: DatabaseService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        *,
        rng: RandomSource,
        locks: Optional[PlayerLockManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self.db = database
        self.locks = locks or PlayerLockManager(config_manager)
        self._clock = clock or utc_now

        self.generator = UniverseGenerator(rng)
        self.exploration = ExplorationEngine(config_manager, self.generator)
        self.combat = CombatEngine(config_manager, rng)
        self.economy = EconomyEngine(config_manager)
        self.energy = EnergyRegenerator(config_manager)

        self.players = PlayerRepository()
        self.ships = ShipRepository()
        self.sectors = SectorRepository()
        self.items = ItemRepository()
        self.inventory = InventoryRepository()
        self.market = MarketRepository()
        self.battles = BattleRepository()
        self.exploration_log = ExplorationLogRepository()

        self.battle_energy_cost = config_manager.get_int("combat.energy_cost", 20)
        self.battle_cooldown = timedelta(seconds=config_manager.get_int("combat.cooldown_seconds", 300))
        self.reward_fraction = config_manager.get_decimal("combat.reward_fraction", Decimal("0.05"))

        self.starting_currency = config_manager.get_decimal("player.starting_currency", Decimal("1000.00"))
        self.starting_max_energy = config_manager.get_int("player.max_energy", 100)
        self.starting_items: List[Dict[str, Any]] = list(
            self.get_config("player.starting_items", DEFAULT_STARTING_ITEMS) or []
        )
        self.starter_ship = {
            "hull": config_manager.get_int("ship.starting_hull", 100),
            "shields": config_manager.get_int("ship.starting_shields", 50),
            "attack": config_manager.get_int("ship.starting_attack", 20),
            "defense": config_manager.get_int("ship.starting_defense", 15),
            "speed": config_manager.get_int("ship.starting_speed", 10),
            "fuel": config_manager.get_int("ship.starting_fuel", 100),
        }

    def now(self) -> datetime:
        return self._clock()

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    async def register_player(
        self,
        external_id: str,
        username: str,
        ship_name: Optional[str] = None,
    ) -> PlayerProfile:
        """
        Create a player with a starter ship and starter items.

        Raises:
            ValidationError: Empty external id or username
            PreconditionError: The external id is already registered
        """
        if not external_id or not external_id.strip():
            raise ValidationError("external_id", "external id is required")
        if not username or not username.strip():
            raise ValidationError("username", "username is required")

        now = self.now()
        async with LogContext(command="register"):
            async with self.db.transaction("register_player") as session:
                if await self.players.find_by_external_id(session, external_id) is not None:
                    raise PreconditionError(
                        "You are already registered",
                        details={"external_id": external_id},
                        error_code="PLAYER_EXISTS",
                    )

                player = await self.players.create(
                    session,
                    external_id,
                    username.strip(),
                    currency=self.starting_currency,
                    max_energy=self.starting_max_energy,
                    at=now,
                )
                ship = await self.ships.create(
                    session,
                    player.id,
                    ship_name or f"{username.strip()}'s Explorer",
                    **self.starter_ship,
                )
                for entry in self.starting_items:
                    item = await self.items.get_or_create(
                        session,
                        entry["name"],
                        item_type=entry.get("item_type", "resource"),
                        value=Decimal(str(entry.get("value", "0.00"))),
                        description=f"A basic {entry.get('item_type', 'resource')} item for new explorers",
                    )
                    await self.inventory.adjust(session, player.id, item.id, int(entry["quantity"]))
                inventory = await self.inventory.list_for_player(session, player.id)

            self.log_operation("register_player", player_id=player.id, external_id=external_id)
            return PlayerProfile(player=player, ship=ship, inventory=inventory)

    # ========================================================================
    # EXPLORATION
    # ========================================================================

    async def explore(self, player_id: int) -> ActionReport:
        async with LogContext(player_id=player_id, command="explore"):
            async with self.locks.hold(player_id, operation="explore"):
                now = self.now()
                async with self.db.transaction("explore") as session:
                    player, restored = await self._begin_action(session, player_id, now)
                    self._require_energy(player, self.exploration.energy_cost)
                    ship = await self.ships.load_active(session, player_id, for_update=True)

                    world = WorldSession(session, self.sectors)
                    outcome = await self.exploration.explore(player, ship, world, now)

                    player = await self.players.apply_delta(
                        session,
                        player_id,
                        outcome.player_delta + PlayerDelta(energy=-outcome.energy_cost),
                    )
                    ship = await self.ships.apply_delta(session, ship.id, outcome.ship_delta)
                    await self.exploration_log.record(
                        session,
                        player_id=player_id,
                        ship_id=ship.id,
                        sector_id=outcome.sector.id,
                        action=ExplorationAction.EXPLORE,
                        energy_cost=outcome.energy_cost,
                        success=outcome.success,
                        results=outcome.snapshot(),
                        rewards={"items": outcome.rewards()},
                        at=now,
                    )

            await self.publish_domain_events([outcome.sector])
            self.log_operation("explore", player_id=player_id, success=outcome.success)
            return ActionReport("explore", outcome, player, ship, restored)

    async def scan(self, player_id: int) -> ActionReport:
        async with LogContext(player_id=player_id, command="scan"):
            async with self.locks.hold(player_id, operation="scan"):
                now = self.now()
                async with self.db.transaction("scan") as session:
                    player, restored = await self._begin_action(session, player_id, now)
                    self._require_energy(player, self.exploration.scan_energy_cost)
                    ship = await self.ships.load_active(session, player_id)

                    world = WorldSession(session, self.sectors)
                    outcome = await self.exploration.scan(player, ship, world)

                    player = await self.players.apply_delta(
                        session,
                        player_id,
                        PlayerDelta(energy=-outcome.energy_cost, active_at=now),
                    )
                    await self.exploration_log.record(
                        session,
                        player_id=player_id,
                        ship_id=ship.id,
                        sector_id=None,
                        action=ExplorationAction.SCAN,
                        energy_cost=outcome.energy_cost,
                        success=True,
                        results=outcome.snapshot(),
                        at=now,
                    )

            await self.publish_domain_events(outcome.sectors)
            self.log_operation("scan", player_id=player_id, sectors=len(outcome.detections))
            return ActionReport("scan", outcome, player, ship, restored)

    async def jump(self, player_id: int, coordinates: str) -> ActionReport:
        """
        Hyperspace jump to `coordinates` (``X<int>:Y<int>:Z<int>``).

        Raises:
            ValidationError: Malformed or out-of-bounds coordinates
            InsufficientResourcesError: Energy below the jump cost, or fuel
                below the minimum
        """
        target = Coordinate.parse(coordinates)

        async with LogContext(player_id=player_id, command="jump"):
            async with self.locks.hold(player_id, operation="jump"):
                now = self.now()
                async with self.db.transaction("jump") as session:
                    player, restored = await self._begin_action(session, player_id, now)
                    self._require_energy(player, self.exploration.jump_cost(target))
                    ship = await self.ships.load_active(session, player_id, for_update=True)

                    world = WorldSession(session, self.sectors)
                    outcome = await self.exploration.jump(player, ship, target, world, now)

                    player = await self.players.apply_delta(
                        session,
                        player_id,
                        outcome.player_delta + PlayerDelta(energy=-outcome.energy_spent),
                    )
                    ship = await self.ships.apply_delta(session, ship.id, outcome.ship_delta)
                    await self.exploration_log.record(
                        session,
                        player_id=player_id,
                        ship_id=ship.id,
                        sector_id=outcome.sector.id,
                        action=ExplorationAction.JUMP,
                        energy_cost=outcome.energy_spent,
                        success=outcome.success,
                        results=outcome.snapshot(),
                        at=now,
                    )

            await self.publish_domain_events([outcome.sector])
            self.log_operation("jump", player_id=player_id, success=outcome.success)
            return ActionReport("jump", outcome, player, ship, restored)

    # ========================================================================
    # COMBAT
    # ========================================================================

    async def battle(self, attacker_id: int, defender_id: int) -> ActionReport:
        """
        Fight another player's active ship.

        The winner takes floor(reward_fraction x loser currency) from the
        loser. Hull damage is persisted to both ships; shields are not.

        Raises:
            SelfTradeError: attacker_id == defender_id
            InsufficientResourcesError: Attacker energy below the battle cost
            CooldownActiveError: Attacker fought within the cooldown window
            ShipDefeatedError: Either active ship has no hull left
        """
        if attacker_id == defender_id:
            raise SelfTradeError("battle yourself")

        async with LogContext(player_id=attacker_id, command="battle"):
            async with self.locks.hold(attacker_id, defender_id, operation="battle"):
                now = self.now()
                async with self.db.transaction("battle") as session:
                    states = await self._lock_players(session, attacker_id, defender_id)
                    attacker, restored = await self._regenerate(session, states[attacker_id], now)
                    defender = states[defender_id]
                    self._require_energy(attacker, self.battle_energy_cost)

                    last_attack = await self.battles.last_attack_at(session, attacker_id)
                    if last_attack is not None and now - last_attack < self.battle_cooldown:
                        remaining = (self.battle_cooldown - (now - last_attack)).total_seconds()
                        raise CooldownActiveError("battle", remaining)

                    ships: Dict[int, ShipState] = {}
                    for owner_id in sorted((attacker_id, defender_id)):
                        ships[owner_id] = await self.ships.load_active(session, owner_id, for_update=True)
                    attacker_ship, defender_ship = ships[attacker_id], ships[defender_id]
                    if attacker_ship.is_defeated:
                        raise ShipDefeatedError(attacker_ship.id, "attacker")
                    if defender_ship.is_defeated:
                        raise ShipDefeatedError(defender_ship.id, "defender")

                    result = self.combat.simulate_battle(attacker_ship, defender_ship)

                    attacker_won = result.winner is BattleSide.ATTACKER
                    winner_id, loser = (attacker_id, defender) if attacker_won else (defender_id, attacker)
                    transfer = (loser.currency * self.reward_fraction).to_integral_value(rounding=ROUND_FLOOR)

                    won = PlayerDelta(currency=transfer, battles_won=1)
                    lost = PlayerDelta(currency=-transfer)
                    deltas = {
                        attacker_id: PlayerDelta(energy=-self.battle_energy_cost, active_at=now)
                        + (won if attacker_won else lost),
                        defender_id: lost if attacker_won else won,
                    }
                    after: Dict[int, PlayerState] = {}
                    for pid in sorted(deltas):
                        after[pid] = await self.players.apply_delta(session, pid, deltas[pid])

                    attacker_ship = await self.ships.apply_delta(
                        session, attacker_ship.id, attacker_ship.hull_set_to(result.attacker.final_hull)
                    )
                    await self.ships.apply_delta(
                        session, defender_ship.id, defender_ship.hull_set_to(result.defender.final_hull)
                    )

                    record = await self.battles.record(
                        session,
                        attacker_id=attacker_id,
                        defender_id=defender_id,
                        result=result,
                        currency_transferred=transfer,
                        at=now,
                    )

            report = BattleReport(
                battle_id=record.id,
                attacker_id=attacker_id,
                defender_id=defender_id,
                winner_id=winner_id,
                currency_transferred=transfer,
                result=result,
            )
            await self.emit_event(
                GameEvent.BATTLE_COMPLETED.value,
                {**report.snapshot(), "occurred_at": now.isoformat()},
            )
            self.log_operation(
                "battle",
                attacker_id=attacker_id,
                defender_id=defender_id,
                winner_id=winner_id,
                rounds=result.rounds,
            )
            return ActionReport("battle", report, after[attacker_id], attacker_ship, restored)

    # ========================================================================
    # MARKET
    # ========================================================================

    async def list_item(
        self,
        player_id: int,
        item_id: int,
        quantity: int,
        price_per_unit: Any,
    ) -> ActionReport:
        """
        Put `quantity` of an item on the market.

        The quantity leaves the seller's inventory in the same transaction
        that stores the listing.
        """
        async with LogContext(player_id=player_id, command="market_list"):
            async with self.locks.hold(player_id, operation="list_item"):
                now = self.now()
                async with self.db.transaction("list_item") as session:
                    seller, restored = await self._begin_action(session, player_id, now)
                    item = await self.items.load(session, item_id)
                    held = await self.inventory.get_quantity(session, player_id, item_id)

                    listing = self.economy.list_item(seller, item, quantity, price_per_unit, now, held)

                    await self.inventory.adjust(session, player_id, item_id, -quantity)
                    await self.market.create(session, listing)
                    seller = await self.players.apply_delta(session, player_id, PlayerDelta(active_at=now))

            await self.publish_domain_events([listing])
            self.log_operation("list_item", player_id=player_id, listing_id=listing.id)
            return ActionReport("list_item", listing, seller, None, restored)

    async def purchase(self, buyer_id: int, listing_id: str) -> ActionReport:
        """
        Buy a whole listing.

        Raises:
            NotFoundError: Unknown listing
            ListingUnavailableError: Sold, expired, or taken by a concurrent buyer
            SelfTradeError: Buyer is the seller
            InsufficientResourcesError: Buyer cannot cover the total price
        """
        async with LogContext(player_id=buyer_id, command="market_buy"):
            async with self.db.session() as session:
                seller_id = (await self.market.load(session, listing_id)).seller_id

            async with self.locks.hold(buyer_id, seller_id, operation="purchase"):
                now = self.now()
                async with self.db.transaction("purchase") as session:
                    states = await self._lock_players(session, buyer_id, seller_id)
                    buyer, restored = await self._regenerate(session, states[buyer_id], now)
                    listing = await self.market.load(session, listing_id)

                    settlement = self.economy.purchase(buyer, listing, now)

                    if not await self.market.deactivate(session, listing.id, now):
                        raise ListingUnavailableError(listing.id)
                    buyer = await self.players.apply_delta(session, buyer_id, settlement.buyer_delta)
                    await self.players.apply_delta(session, settlement.seller_id, settlement.seller_delta)
                    await self.inventory.adjust(session, buyer_id, settlement.item_id, settlement.quantity)
                    listing.close(ListingStatus.SOLD, buyer_id=buyer_id)

            await self.publish_domain_events([listing])
            self.log_operation(
                "purchase",
                buyer_id=buyer_id,
                seller_id=settlement.seller_id,
                listing_id=listing.id,
                total_price=str(settlement.total_price),
            )
            return ActionReport("purchase", settlement, buyer, None, restored)

    async def expire_listings(self) -> List[MarketListing]:
        """Close every active listing past expiry and return its items to the seller."""
        now = self.now()
        async with self.db.session() as session:
            candidates = await self.market.list_expired(session, now)
        if not candidates:
            return []

        closed: List[MarketListing] = []
        async with LogContext(command="expire_listings"):
            async with self.locks.hold(*{listing.seller_id for listing in candidates}, operation="expire"):
                async with self.db.transaction("expire_listings") as session:
                    for listing in await self.market.list_expired(session, now):
                        if not await self.market.deactivate(session, listing.id, now):
                            continue
                        await self.inventory.adjust(session, listing.seller_id, listing.item_id, listing.quantity)
                        listing.close(ListingStatus.EXPIRED)
                        closed.append(listing)

            await self.publish_domain_events(closed)
            self.log_operation("expire_listings", closed=len(closed))
        return closed

    async def browse_market(
        self,
        limit: int = 20,
        offset: int = 0,
        item_id: Optional[int] = None,
    ) -> List[MarketListing]:
        self.validate_positive_int(limit, "limit")
        if offset < 0:
            raise ValidationError("offset", "offset cannot be negative")
        async with self.db.session() as session:
            return await self.market.list_active(session, limit, offset, now=self.now(), item_id=item_id)

    async def market_trends(self) -> Dict[int, MarketTrend]:
        async with self.db.session() as session:
            listings = await self.market.list_active(session, None, now=self.now())
        return self.economy.compute_trends(listings)

    async def popular_items(self, limit: Optional[int] = None) -> List[PopularItem]:
        async with self.db.session() as session:
            listings = await self.market.list_active(session, None, now=self.now())
        return self.economy.popular_items(listings, limit)

    async def my_listings(self, player_id: int, active_only: bool = True) -> List[MarketListing]:
        async with self.db.session() as session:
            return await self.market.list_by_seller(session, player_id, active_only=active_only)

    # ========================================================================
    # READS
    # ========================================================================

    async def profile(self, player_id: int) -> PlayerProfile:
        """Player, active ship and holdings. Energy shown as regenerated up to now."""
        async with self.db.session() as session:
            player = await self.players.load(session, player_id)
            ship = await self.ships.load_active(session, player_id)
            inventory = await self.inventory.list_for_player(session, player_id)
            discovered = await self.sectors.discovered_by(session, player_id)
            battles = await self.battles.history(session, player_id)

        player = player.apply(self.energy.regenerate(player, self.now()).delta)
        return PlayerProfile(
            player=player,
            ship=ship,
            inventory=inventory,
            sectors_discovered=len(discovered),
            recent_battles=len(battles),
        )

    async def leaderboard(self, limit: int = 10) -> List[PlayerState]:
        self.validate_positive_int(limit, "limit")
        async with self.db.session() as session:
            return await self.players.top_by_battles(session, limit)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    async def _begin_action(
        self,
        session: AsyncSession,
        player_id: int,
        now: datetime,
    ) -> Tuple[PlayerState, int]:
        player = await self.players.load_for_update(session, player_id)
        return await self._regenerate(session, player, now)

    async def _regenerate(
        self,
        session: AsyncSession,
        player: PlayerState,
        now: datetime,
    ) -> Tuple[PlayerState, int]:
        restore = self.energy.regenerate(player, now)
        if restore.delta.is_empty:
            return player, 0
        return await self.players.apply_delta(session, player.id, restore.delta), restore.restored

    async def _lock_players(self, session: AsyncSession, *player_ids: int) -> Dict[int, PlayerState]:
        # ascending id order, same as PlayerLockManager
        states: Dict[int, PlayerState] = {}
        for player_id in sorted(set(player_ids)):
            states[player_id] = await self.players.load_for_update(session, player_id)
        return states

    @staticmethod
    def _require_energy(player: PlayerState, cost: int) -> None:
        if player.energy < cost:
            raise InsufficientResourcesError("energy", cost, player.energy)
