"""
Static configuration management for Nexium Frontier.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults and type validation. This module handles the values
that are fixed for the lifetime of the process; game balance lives in the
YAML-backed `ConfigManager`.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to static configuration values
- Validate critical settings on startup

Non-Responsibilities
--------------------
- Game balance values (handled by ConfigManager)
- Secrets management (use environment variables)

Environment Variables
---------------------
Required:
- DATABASE_URL: SQLAlchemy async URL (e.g. postgresql+asyncpg://...)

Optional (with defaults):
- ENVIRONMENT: Environment type (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON: Force JSON console logs (default: production only)
- LOG_TO_FILE: Enable the rotating JSON file handler (default: False)
- LOGS_DIR / CONFIG_DIR: directories relative to the project root
- DATABASE_ECHO, DATABASE_POOL_SIZE, DATABASE_MAX_OVERFLOW
- RNG_SEED: seed for the shared RandomSource (replay/testing)
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # structured logger not yet initialized during bootstrap
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


class Config:
    """
    Centralized static configuration.

    All values are loaded from environment variables with sensible defaults.
    Class-level attributes only; the class is never instantiated.

    Usage
    -----
    >>> db_url = Config.DATABASE_URL
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    """

    _validated: bool = False

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_TO_FILE: bool = False

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"
    CONFIG_DIR = PROJECT_ROOT / "config"

    # =========================================================================
    # Database Configuration
    # =========================================================================

    DATABASE_URL: str = ""
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 10

    # =========================================================================
    # Simulation
    # =========================================================================

    RNG_SEED: Optional[int] = None

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Out-of-range or malformed values log a warning and fall back to
        the default.

        Example
        -------
        >>> Config._safe_int("DATABASE_POOL_SIZE", 10, min_val=1, max_val=200)
        10
        """
        raw_value = os.getenv(key)
        if raw_value is None:
            return default

        try:
            value = int(raw_value)
        except ValueError:
            logging.warning(f"{key}='{raw_value}' is not a valid integer, using default {default}")
            return default

        if min_val is not None and value < min_val:
            logging.warning(f"{key}={value} is below minimum {min_val}, using default {default}")
            return default
        if max_val is not None and value > max_val:
            logging.warning(f"{key}={value} exceeds maximum {max_val}, using default {default}")
            return default
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: bool) -> bool:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        raw_value = os.getenv(key)
        if raw_value is None:
            return default

        normalized = raw_value.strip().lower()
        if normalized in ("true", "yes", "1", "on"):
            return True
        if normalized in ("false", "no", "0", "off"):
            return False

        logging.warning(f"{key}='{raw_value}' is not a valid boolean, using default {default}")
        return default

    @classmethod
    def _optional_int(cls, key: str) -> Optional[int]:
        raw_value = os.getenv(key)
        if raw_value is None or not raw_value.strip():
            return None
        try:
            return int(raw_value)
        except ValueError:
            from nexium.core.exceptions import ConfigurationError

            raise ConfigurationError(key, f"expected an integer, got {raw_value!r}")

    @classmethod
    def _resolve_dir(cls, key: str, default: Path) -> Path:
        raw_value = os.getenv(key)
        if not raw_value:
            return default
        path = Path(raw_value)
        return path if path.is_absolute() else cls.PROJECT_ROOT / path

    # =========================================================================
    # Loading & Validation
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """(Re)load every value from the environment."""
        cls.ENVIRONMENT = Environment.from_string(
            os.getenv("ENVIRONMENT", "development")
        ).value
        cls.DEBUG = cls._safe_bool("DEBUG", False)
        cls.LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if cls.DEBUG else "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", False) if os.getenv("LOG_JSON") else None
        cls.LOG_COLORS = cls._safe_bool("LOG_COLORS", True)
        cls.LOG_TO_FILE = cls._safe_bool("LOG_TO_FILE", False)

        cls.LOGS_DIR = cls._resolve_dir("LOGS_DIR", cls.PROJECT_ROOT / "logs")
        cls.CONFIG_DIR = cls._resolve_dir("CONFIG_DIR", cls.PROJECT_ROOT / "config")

        cls.DATABASE_URL = os.getenv("DATABASE_URL", "")
        cls.DATABASE_ECHO = cls._safe_bool("DATABASE_ECHO", False)
        cls.DATABASE_POOL_SIZE = cls._safe_int("DATABASE_POOL_SIZE", 10, min_val=1, max_val=200)
        cls.DATABASE_MAX_OVERFLOW = cls._safe_int("DATABASE_MAX_OVERFLOW", 10, min_val=0, max_val=200)

        cls.RNG_SEED = cls._optional_int("RNG_SEED")

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical settings, failing fast on misconfiguration.

        Raises
        ------
        ConfigurationError
            If DATABASE_URL is missing or not an async driver URL.
        """
        from nexium.core.exceptions import ConfigurationError

        cls.load()

        if not cls.DATABASE_URL:
            raise ConfigurationError("DATABASE_URL", "is required")
        if "+" not in cls.DATABASE_URL.split("://", 1)[0]:
            raise ConfigurationError(
                "DATABASE_URL",
                "must name an async driver, e.g. postgresql+asyncpg://",
            )

        cls._validated = True

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-secret summary suitable for a startup log line."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "config_dir": str(cls.CONFIG_DIR),
            "database_scheme": cls.DATABASE_URL.split("://", 1)[0] if cls.DATABASE_URL else None,
            "rng_seeded": cls.RNG_SEED is not None,
            "validated": cls._validated,
        }


Config.load()
