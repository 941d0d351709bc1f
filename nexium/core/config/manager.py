"""
ConfigManager: YAML-backed game balance configuration for Nexium.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable balance values
  (combat damage variation, exploration success curve, jump costs, listing
  lifetime, energy regeneration).
- Keep balance out of the engines: every engine reads its tunables here and
  falls back to built-in defaults when a key is absent.

Responsibilities
----------------
- Load and deep-merge every `*.yaml` / `*.yml` file under the config
  directory (sorted, so later files override earlier ones deterministically).
- Serve reads from the merged in-memory tree.
- Offer typed accessors (`get_int`, `get_float`, `get_decimal`) that raise
  `ConfigurationError` on values of the wrong shape instead of letting a
  typo silently rebalance the game.

Key Design Decisions
--------------------
- Instance-based. The orchestration layer owns one ConfigManager and injects
  it into the engines; tests build their own with `from_dict`.
- Read-only after load. Hot reload is `reload()`, which swaps the whole tree.

Dependencies
------------
- PyYAML (`yaml.safe_load`)
- nexium.core.config.config.Config for the default config directory
"""

from __future__ import annotations

import copy
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

import yaml

from nexium.core.config.config import Config
from nexium.core.exceptions import ConfigurationError
from nexium.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ConfigManager:
    """
    Dot-notation access to merged YAML configuration.

    Examples
    --------
    >>> manager = ConfigManager.from_dict({"combat": {"max_rounds": 10}})
    >>> manager.get_int("combat.max_rounds", 12)
    10
    >>> manager.get("combat.unknown", default="fallback")
    'fallback'
    """

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self._config_dir: Optional[Path] = Path(config_dir) if config_dir else None
        self._values: Dict[str, Any] = {}
        self._loaded_files: List[str] = []

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_directory(cls, config_dir: Optional[Path] = None) -> "ConfigManager":
        manager = cls(config_dir or Config.CONFIG_DIR)
        manager.reload()
        return manager

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "ConfigManager":
        manager = cls()
        manager._values = copy.deepcopy(dict(values))
        return manager

    @staticmethod
    def _deep_merge(target: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
        """Recursively merge `source` into `target` in place."""
        for key, value in source.items():
            if isinstance(value, Mapping) and isinstance(target.get(key), MutableMapping):
                ConfigManager._deep_merge(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    def reload(self) -> None:
        """Re-read every YAML file under the config directory."""
        if self._config_dir is None:
            return

        values: Dict[str, Any] = {}
        loaded: List[str] = []

        if not self._config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(self._config_dir)},
            )
            self._values, self._loaded_files = values, loaded
            return

        yaml_files = sorted(
            list(self._config_dir.rglob("*.yaml")) + list(self._config_dir.rglob("*.yml"))
        )
        for yaml_file in yaml_files:
            relative = str(yaml_file.relative_to(self._config_dir))
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ConfigurationError(relative, f"invalid YAML: {exc}") from exc

            if data is None:
                continue
            if not isinstance(data, dict):
                logger.warning(
                    "Ignoring non-mapping YAML root",
                    extra={"file": relative, "root_type": type(data).__name__},
                )
                continue

            self._deep_merge(values, data)
            loaded.append(relative)
            logger.debug("Loaded YAML config", extra={"file": relative})

        self._values, self._loaded_files = values, loaded
        logger.info(
            "Game configuration loaded",
            extra={"files": loaded, "top_level_keys": sorted(values)},
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def _lookup(self, key: str) -> Any:
        node: Any = self._values
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at dot path `key`, or `default` if any segment is absent."""
        value = self._lookup(key)
        return default if value is _MISSING or value is None else value

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key, default)
        # bool is an int subclass, reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(key, f"expected an integer, got {value!r}")
        return value

    def get_float(self, key: str, default: float) -> float:
        value = self.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(key, f"expected a number, got {value!r}")
        return float(value)

    def get_decimal(self, key: str, default: Decimal) -> Decimal:
        value = self.get(key, default)
        if isinstance(value, bool):
            raise ConfigurationError(key, f"expected a decimal, got {value!r}")
        try:
            # str() first so 0.05 from YAML becomes Decimal("0.05"), not its binary float
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise ConfigurationError(key, f"expected a decimal, got {value!r}") from exc

    def get_range(self, key: str, default: Tuple[int, int]) -> Tuple[int, int]:
        """Inclusive integer range written as a two-element list, e.g. ``[10, 29]``."""
        value = self.get(key, default)
        if (
            not isinstance(value, (list, tuple))
            or len(value) != 2
            or any(isinstance(v, bool) or not isinstance(v, int) for v in value)
            or value[0] > value[1]
        ):
            raise ConfigurationError(key, f"expected [low, high] integers, got {value!r}")
        return int(value[0]), int(value[1])

    def section(self, key: str) -> Dict[str, Any]:
        value = self.get(key, {})
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    @property
    def loaded_files(self) -> List[str]:
        return list(self._loaded_files)

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING
