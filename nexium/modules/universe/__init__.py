"""
Universe Module
===============

Domain: procedural coordinates, sector drafts and flavour text.
"""

from .generator import UniverseGenerator

__all__ = ["UniverseGenerator"]
