"""Per-player serialization of mutating commands."""

from nexium.core.concurrency.locks import PlayerLockManager

__all__ = ["PlayerLockManager"]
