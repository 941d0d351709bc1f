"""
Per-player locks for one process.

Purpose
-------
Serialize every mutating command that touches a player's currency,
inventory, energy or ship. Two battles or trades for the same player never
interleave their read-modify-write; commands for unrelated players run
concurrently.

Design Notes
------------
- One `asyncio.Lock` per player id, created on first use.
- Multi-player commands (battle, purchase) acquire in ascending id order so
  two commands locking the same pair cannot deadlock.
- Acquisition waits at most `core.locks.wait_timeout_sec`; on timeout a
  retryable ConflictError is raised and nothing has been mutated.
- Row locks taken inside the database transaction still apply; this layer
  only keeps same-process callers from queueing on the database.

Config Keys
-----------
- core.locks.wait_timeout_sec : float (default 5.0)
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List, Optional

from nexium.core.config.manager import ConfigManager
from nexium.core.logging.logger import get_logger
from nexium.domain.exceptions import ConflictError

logger = get_logger(__name__)


class PlayerLockManager:
    """
    In-process lock registry keyed by player id.

    Example
    -------
    >>> async with locks.hold(buyer_id, seller_id, operation="purchase"):
    ...     await service.settle(...)
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        self._locks: Dict[int, asyncio.Lock] = {}
        self.wait_timeout = (
            config_manager.get_float("core.locks.wait_timeout_sec", 5.0) if config_manager else 5.0
        )

    def _lock_for(self, player_id: int) -> asyncio.Lock:
        lock = self._locks.get(player_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[player_id] = lock
        return lock

    def is_locked(self, player_id: int) -> bool:
        lock = self._locks.get(player_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, *player_ids: int, operation: Optional[str] = None) -> AsyncGenerator[None, None]:
        """
        Hold the locks of every distinct id in `player_ids` for the block.

        Raises
        ------
        ConflictError
            If any lock is not acquired within `wait_timeout`.
        """
        ordered = sorted(set(player_ids))
        acquired: List[asyncio.Lock] = []
        start = time.monotonic()

        try:
            for player_id in ordered:
                lock = self._lock_for(player_id)
                remaining = self.wait_timeout - (time.monotonic() - start)
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=max(remaining, 0.001))
                except asyncio.TimeoutError:
                    logger.warning(
                        "Failed to acquire player lock within timeout",
                        extra={
                            "player_id": player_id,
                            "operation": operation,
                            "wait_timeout_sec": self.wait_timeout,
                        },
                    )
                    raise ConflictError(
                        "Another action for this player is still running, please try again",
                        details={"player_id": player_id, "operation": operation},
                        error_code="PLAYER_BUSY",
                    ) from None
                acquired.append(lock)

            logger.debug(
                "Player locks acquired",
                extra={
                    "player_ids": ordered,
                    "operation": operation,
                    "wait_ms": round((time.monotonic() - start) * 1000.0, 2),
                },
            )
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
