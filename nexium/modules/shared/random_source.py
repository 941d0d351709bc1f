"""
RandomSource: the single entry point for every stochastic decision.

Purpose
-------
Every roll the simulation makes (coordinates, sector drafts, damage
variation, critical hits, exploration success, rewards, jump mishaps) goes
through an injected RandomSource, so a fixed seed replays an identical
universe and identical battles.

Design Notes
------------
- Wraps a private `random.Random`; never touches the module-level RNG.
- Internally locked so one shared instance can serve concurrent commands
  without repeated or interleaved sequences inside a single draw.
- Tests subclass it (or use `mocker`) to script exact values.
"""

from __future__ import annotations

import random
import threading
from typing import List, Optional, Sequence, TypeVar

from nexium.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RandomSource:
    """
    Seedable, thread-safe pseudo-random provider.

    Examples
    --------
    >>> a, b = RandomSource(seed=7), RandomSource(seed=7)
    >>> [a.randint(1, 100) for _ in range(3)] == [b.randint(1, 100) for _ in range(3)]
    True
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._seed = seed
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def reseed(self, seed: Optional[int]) -> None:
        with self._lock:
            self._seed = seed
            self._rng.seed(seed)
        logger.debug("RandomSource reseeded", extra={"seeded": seed is not None})

    def random(self) -> float:
        """Uniform float in [0.0, 1.0)."""
        with self._lock:
            return self._rng.random()

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both inclusive."""
        if low > high:
            raise ValueError(f"empty range [{low}, {high}]")
        with self._lock:
            return self._rng.randint(low, high)

    def uniform(self, low: float, high: float) -> float:
        with self._lock:
            return self._rng.uniform(low, high)

    def choice(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("cannot choose from an empty sequence")
        with self._lock:
            return self._rng.choice(options)

    def sample(self, population: Sequence[T], k: int) -> List[T]:
        """`k` distinct elements, in draw order."""
        with self._lock:
            return self._rng.sample(list(population), k)

    def chance(self, probability: float) -> bool:
        """True with the given probability (strict `random() < p`)."""
        return self.random() < probability
