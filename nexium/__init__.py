"""
Nexium Frontier - game simulation engine.

Procedural universe generation, ship combat resolution, exploration and
market settlement for a persistent, chat-driven space exploration game.
"""

__version__ = "1.0.0"
