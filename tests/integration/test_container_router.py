"""
Integration Tests for ServiceContainer and CommandRouter
========================================================

Purpose
-------
Boot the full object graph the way main.py does (minus YAML and env) and
drive it through the command router, the surface a chat bot or HTTP app
would call.

Test Coverage
-------------
- Container lifecycle and health check
- Router dispatch end to end with JSON-safe results
- Domain failures surfaced as error payloads
- Listing expiry sweeper loop
"""

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio

from nexium.core.config.manager import ConfigManager
from nexium.core.database.service import DatabaseService
from nexium.core.event.types import GameEvent
from nexium.core.services.container import ServiceContainer
from nexium.main import run_expiry_sweeper
from nexium.modules.shared.random_source import RandomSource

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest_asyncio.fixture
async def container(tmp_path):
    container = ServiceContainer(
        ConfigManager.from_dict({"economy": {"expiry_sweep_seconds": 1}}),
        database=DatabaseService(f"sqlite+aiosqlite:///{tmp_path / 'container.db'}"),
        rng=RandomSource(7),
        create_schema=True,
    )
    await container.initialize()
    yield container
    await container.shutdown()


async def register(router, external_id, username):
    result = await router.dispatch("register", external_id=external_id, username=username)
    assert result.ok, result.error
    return result.data["player"]["player_id"]


# ============================================================================
# LIFECYCLE
# ============================================================================


class TestLifecycle:
    async def test_health_check(self, container):
        health = await container.health_check()

        assert health["initialized"] is True
        assert health["database"] is True
        assert health["component_count"] >= 4
        assert set(health["log_queue"]) == {"enqueued", "dropped"}

    async def test_initialize_twice_is_a_no_op(self, container):
        game = container.game

        await container.initialize()

        assert container.game is game

    async def test_accessors_before_initialize(self):
        container = ServiceContainer(ConfigManager.from_dict({}))

        with pytest.raises(RuntimeError):
            container.router
        with pytest.raises(RuntimeError):
            container.game
        assert (await container.health_check())["database"] is False

    async def test_shutdown(self, tmp_path):
        container = ServiceContainer(
            ConfigManager.from_dict({}),
            database=DatabaseService(f"sqlite+aiosqlite:///{tmp_path / 'shutdown.db'}"),
            create_schema=True,
        )
        await container.initialize()

        await container.shutdown()

        assert container.is_initialized is False
        assert (await container.health_check())["initialized"] is False


# ============================================================================
# ROUTER
# ============================================================================


class TestRouterEndToEnd:
    async def test_trade_through_the_router(self, container):
        router = container.router
        seller = await register(router, "ext-seller", "lyra")
        buyer = await register(router, "ext-buyer", "orion")

        listed = await router.dispatch("market_list", player_id=seller, item_id=1, quantity=2, price_per_unit="7.25")
        listing_id = listed.data["outcome"]["listing_id"]
        bought = await router.dispatch("market_buy", player_id=str(buyer), listing_id=listing_id)
        profile = await router.dispatch("profile", player_id=seller)

        assert listed.ok and bought.ok
        assert bought.data["outcome"]["total_price"] == "14.50"
        assert bought.data["player"]["currency"] == "985.50"
        assert profile.data["player"]["currency"] == "1014.50"
        assert {"item_id": 1, "quantity": 3} in profile.data["inventory"]

    async def test_explore_through_the_router(self, container):
        router = container.router
        player_id = await register(router, "ext-1", "lyra")

        result = await router.dispatch("explore", player_id=player_id)

        assert result.ok
        assert result.data["action"] == "explore"
        assert result.data["player"]["energy"] == 90

    async def test_domain_failures_become_error_payloads(self, container):
        router = container.router
        player_id = await register(router, "ext-1", "lyra")

        duplicate = await router.dispatch("register", external_id="ext-1", username="lyra")
        bad_jump = await router.dispatch("jump", player_id=player_id, coordinates="X1:Y2")
        missing = await router.dispatch("profile", player_id=404)

        assert duplicate.error["error_code"] == "PLAYER_EXISTS"
        assert bad_jump.ok is False
        assert bad_jump.error["category"] == "precondition"
        assert missing.error["error_code"] == "PLAYER_NOT_FOUND"

    async def test_leaderboard_and_market_reads(self, container):
        router = container.router
        await register(router, "ext-1", "lyra")

        board = await router.dispatch("leaderboard", limit=3)
        browse = await router.dispatch("market_browse")
        trends = await router.dispatch("market_trends")

        assert [entry["username"] for entry in board.data] == ["lyra"]
        assert browse.data == []
        assert trends.data == {}


# ============================================================================
# EXPIRY SWEEPER
# ============================================================================


class TestExpirySweeper:
    async def test_sweeper_closes_stale_listings(self, container):
        router = container.router
        seller = await register(router, "ext-seller", "lyra")
        await router.dispatch("market_list", player_id=seller, item_id=2, quantity=1, price_per_unit="3.00")

        later = container.game.now() + timedelta(days=8)
        container.game._clock = lambda: later
        stop = asyncio.Event()
        expired = []

        def on_expired(payload):
            expired.append(payload["listing_id"])
            stop.set()

        container.event_bus.subscribe(GameEvent.LISTING_EXPIRED.value, on_expired, identifier="sweeper-test")
        await asyncio.wait_for(run_expiry_sweeper(container, stop), timeout=5)

        profile = await router.dispatch("profile", player_id=seller)
        assert len(expired) == 1
        assert {"item_id": 2, "quantity": 3} in profile.data["inventory"]
