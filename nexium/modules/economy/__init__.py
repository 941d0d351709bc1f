"""
Economy Module
==============

Domain: market listings, settlement, price trends and energy regeneration.
"""

from .energy import EnergyRegenerator
from .engine import EconomyEngine
from .repository import InventoryRepository, ItemRepository, MarketRepository

__all__ = [
    "EconomyEngine",
    "EnergyRegenerator",
    "InventoryRepository",
    "ItemRepository",
    "MarketRepository",
]
