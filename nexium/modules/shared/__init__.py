"""
Shared Module
=============

Building blocks used by every feature module:
- BaseRepository: generic async data access
- BaseService: config, logging and event publishing helpers
- RandomSource: the single injectable source of randomness
- WorldRepository: port the exploration engine charts sectors through
"""

from .base_repository import BaseRepository
from .base_service import BaseService
from .ports import WorldRepository
from .random_source import RandomSource

__all__ = [
    "BaseRepository",
    "BaseService",
    "RandomSource",
    "WorldRepository",
]
