"""
Economy Engine
==============

Purpose
-------
Market rules: validating and pricing new listings, deciding whether a
purchase may settle, and read-only market aggregates.

Design Notes
------------
- Pure. The engine never touches storage; `purchase` returns a
  SettlementResult whose four effects (buyer debit, seller credit, buyer
  inventory, listing close) the game service applies in one transaction
  with a conditional deactivate so only one racing buyer wins.
- Money is `decimal.Decimal` throughout; prices carry at most two decimal
  places and `total_price` is the exact product.
- `compute_trends` orders by listing creation time, so the "recent" window
  is the last few listings to arrive.

Config Keys (defaults in parentheses)
-------------------------------------
economy.listing_lifetime_days (7), economy.trend_window (5),
economy.trend_threshold_percent (5), economy.popular_limit (10)
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Sequence, Union

from nexium.core.config.manager import ConfigManager
from nexium.core.logging.logger import get_logger
from nexium.domain.exceptions import (
    InsufficientResourcesError,
    ListingUnavailableError,
    SelfTradeError,
    ValidationError,
)
from nexium.domain.models.market import (
    Item,
    MarketListing,
    MarketTrend,
    PopularItem,
    SettlementResult,
    TrendDirection,
)
from nexium.domain.models.player import CURRENCY_QUANTUM, ZERO, PlayerDelta, PlayerState

logger = get_logger(__name__)

HUNDRED = Decimal("100")


class EconomyEngine:
    """
    Listing creation, purchase settlement and market statistics.

    Public Methods
    --------------
    - parse_price(raw) -> Decimal
    - list_item(seller, item, quantity, price_per_unit, now, held) -> MarketListing
    - purchase(buyer, listing, now) -> SettlementResult
    - compute_trends(listings) -> Dict[int, MarketTrend]
    - popular_items(listings, limit) -> List[PopularItem]
    - expired(listings, now) -> List[MarketListing]
    """

    def __init__(self, config_manager: ConfigManager) -> None:
        self._config = config_manager

        self.listing_lifetime = timedelta(days=config_manager.get_int("economy.listing_lifetime_days", 7))
        self.trend_window = config_manager.get_int("economy.trend_window", 5)
        self.trend_threshold = config_manager.get_decimal("economy.trend_threshold_percent", Decimal("5"))
        self.popular_limit = config_manager.get_int("economy.popular_limit", 10)

        logger.debug(
            "EconomyEngine initialized",
            extra={
                "listing_lifetime_days": self.listing_lifetime.days,
                "trend_window": self.trend_window,
                "trend_threshold": str(self.trend_threshold),
            },
        )

    # ========================================================================
    # LISTINGS
    # ========================================================================

    @staticmethod
    def parse_price(raw: Union[Decimal, str, int]) -> Decimal:
        """
        Validate a unit price: positive, finite, at most two decimal places.

        Floats are refused so binary rounding never reaches a balance.
        """
        if isinstance(raw, (bool, float)):
            raise ValidationError("price_per_unit", "price must be given as a decimal string or integer")
        try:
            price = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
        except InvalidOperation as exc:
            raise ValidationError("price_per_unit", f"{raw!r} is not a valid price") from exc

        if not price.is_finite() or price <= ZERO:
            raise ValidationError("price_per_unit", "price must be greater than 0")
        exponent = price.as_tuple().exponent
        if isinstance(exponent, int) and exponent < -2:
            raise ValidationError("price_per_unit", "price can have at most two decimal places")
        return price.quantize(CURRENCY_QUANTUM)

    def list_item(
        self,
        seller: PlayerState,
        item: Item,
        quantity: int,
        price_per_unit: Union[Decimal, str, int],
        now: datetime,
        held: int,
    ) -> MarketListing:
        """
        Build a new listing.

        `held` is the seller's current quantity of `item`; the caller removes
        `quantity` from the inventory in the same transaction that stores the
        listing.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity", "quantity must be a positive whole number")
        price = self.parse_price(price_per_unit)
        if held < quantity:
            raise InsufficientResourcesError("inventory", quantity, held)

        listing = MarketListing(
            listing_id=str(uuid.uuid4()),
            seller_id=seller.id,
            item_id=item.id,
            quantity=quantity,
            price_per_unit=price,
            total_price=price * quantity,
            created_at=now,
            expires_at=now + self.listing_lifetime,
            item_name=item.name,
        )
        listing.announce()

        logger.info(
            "Listing created",
            extra={
                "listing_id": listing.id,
                "seller_id": seller.id,
                "item_id": item.id,
                "quantity": quantity,
                "total_price": str(listing.total_price),
            },
        )
        return listing

    # ========================================================================
    # SETTLEMENT
    # ========================================================================

    def purchase(self, buyer: PlayerState, listing: MarketListing, now: datetime) -> SettlementResult:
        """
        Decide whether `buyer` may take `listing` and compute the settlement.

        Checks run in order: listing availability, self-trade, funds.
        """
        if not listing.is_active:
            raise ListingUnavailableError(listing.id)
        if listing.is_expired(now):
            raise ListingUnavailableError(listing.id, reason="expired")
        if buyer.id == listing.seller_id:
            raise SelfTradeError("buy your own listing")
        if not buyer.can_afford(listing.total_price):
            raise InsufficientResourcesError("currency", listing.total_price, buyer.currency)

        settlement = SettlementResult(
            listing_id=listing.id,
            buyer_id=buyer.id,
            seller_id=listing.seller_id,
            item_id=listing.item_id,
            quantity=listing.quantity,
            total_price=listing.total_price,
            buyer_delta=PlayerDelta(currency=-listing.total_price, active_at=now),
            seller_delta=PlayerDelta(currency=listing.total_price),
        )

        logger.debug("Settlement computed", extra=settlement.snapshot())
        return settlement

    # ========================================================================
    # AGGREGATES
    # ========================================================================

    def compute_trends(self, listings: Iterable[MarketListing]) -> Dict[int, MarketTrend]:
        """
        Per-item price trend over the given active listings.

        Mean of every price against the mean of the last `trend_window`
        arrivals; rising/falling beyond the threshold, stable otherwise or
        with fewer than two prices.
        """
        prices_by_item: Dict[int, List[Decimal]] = OrderedDict()
        for listing in sorted(listings, key=lambda entry: entry.created_at):
            prices_by_item.setdefault(listing.item_id, []).append(listing.price_per_unit)

        trends: Dict[int, MarketTrend] = {}
        for item_id, prices in prices_by_item.items():
            if len(prices) < 2:
                trends[item_id] = MarketTrend(item_id, TrendDirection.STABLE, Decimal("0.00"), len(prices))
                continue

            average = _mean(prices)
            recent = _mean(prices[-self.trend_window:])
            change = (recent - average) / average * HUNDRED

            direction = TrendDirection.STABLE
            if abs(change) > self.trend_threshold:
                direction = TrendDirection.RISING if change > 0 else TrendDirection.FALLING

            trends[item_id] = MarketTrend(
                item_id=item_id,
                direction=direction,
                change_percent=change.quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP),
                sample_size=len(prices),
            )
        return trends

    def popular_items(
        self,
        listings: Iterable[MarketListing],
        limit: Optional[int] = None,
    ) -> List[PopularItem]:
        """Items ranked by number of active listings, with the mean unit price."""
        grouped: Dict[int, List[MarketListing]] = OrderedDict()
        for listing in listings:
            grouped.setdefault(listing.item_id, []).append(listing)

        ranked = sorted(grouped.values(), key=len, reverse=True)
        return [
            PopularItem(
                item_id=group[0].item_id,
                item_name=group[0].item_name,
                listings=len(group),
                average_price=_mean([entry.price_per_unit for entry in group]).quantize(
                    CURRENCY_QUANTUM, rounding=ROUND_HALF_UP
                ),
            )
            for group in ranked[: limit or self.popular_limit]
        ]

    @staticmethod
    def expired(listings: Iterable[MarketListing], now: datetime) -> List[MarketListing]:
        return [listing for listing in listings if listing.is_active and listing.is_expired(now)]


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, ZERO) / len(values)
