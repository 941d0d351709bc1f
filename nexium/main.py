"""
Nexium Frontier - Process Entry Point
=====================================

Bootstraps the simulation core for a host process (chat bot or HTTP app
embed the container the same way) and runs the market maintenance loop:

- Config validation
- Game configuration (YAML)
- Service container (database, event bus, RandomSource, GameService)
- Periodic listing expiry sweep
- Graceful shutdown

Config Keys
-----------
- economy.expiry_sweep_seconds : int (default 60)
"""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Optional

from nexium.core.config.config import Config
from nexium.core.config.manager import ConfigManager
from nexium.core.logging.logger import LogContext, get_logger, shutdown_logging
from nexium.core.services.container import ServiceContainer
from nexium.domain.exceptions import NexiumDomainException

logger = get_logger(__name__)


# ============================================================================
# Application Bootstrap
# ============================================================================


async def _startup() -> ServiceContainer:
    logger.info("========== NEXIUM FRONTIER INITIALIZATION START ==========")

    try:
        Config.validate()
        logger.info("Configuration validated", extra=Config.get_config_summary())
    except Exception as exc:
        logger.critical(f"Configuration validation failed: {exc}")
        raise

    config_manager = ConfigManager.from_directory(Config.CONFIG_DIR)
    container = ServiceContainer(config_manager, create_schema=True)
    await container.initialize()

    logger.info("========== INFRASTRUCTURE INITIALIZED SUCCESSFULLY ==========")
    return container


async def _shutdown(container: Optional[ServiceContainer]) -> None:
    logger.info("========== NEXIUM FRONTIER SHUTDOWN START ==========")
    if container is not None:
        try:
            await container.shutdown()
        except Exception as exc:
            logger.error(f"Service container shutdown error: {exc}", exc_info=True)
    logger.info("========== SHUTDOWN COMPLETE ==========")


# ============================================================================
# Maintenance Loop
# ============================================================================


async def run_expiry_sweeper(container: ServiceContainer, stop: asyncio.Event) -> None:
    """Expire stale listings every `economy.expiry_sweep_seconds` until `stop` is set."""
    interval = container.config.get_int("economy.expiry_sweep_seconds", 60)

    while not stop.is_set():
        async with LogContext(component="expiry_sweeper"):
            try:
                closed = await container.game.expire_listings()
                if closed:
                    logger.info("Expired listings closed", extra={"count": len(closed)})
            except NexiumDomainException as exc:
                # retryable failures wait for the next sweep
                logger.warning("Expiry sweep failed", extra=exc.to_dict())

        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue


async def main() -> None:
    container: Optional[ServiceContainer] = None
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, stop.set)
        loop.add_signal_handler(signal.SIGINT, stop.set)
    except NotImplementedError:
        logger.debug("Signal handlers not supported on this platform")

    try:
        container = await _startup()
        await run_expiry_sweeper(container, stop)
    except asyncio.CancelledError:
        logger.warning("Asyncio task cancellation received; shutting down gracefully.")
        raise
    finally:
        await _shutdown(container)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped via keyboard interrupt.")
    except Exception as exc:
        logger.critical(f"Startup failure: {exc}", exc_info=True)
        sys.exit(1)
    finally:
        shutdown_logging()
