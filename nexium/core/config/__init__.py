"""
Configuration for Nexium.

- **config.py**: static values from environment variables (`Config`).
- **manager.py**: YAML game balance (`ConfigManager`). Import it from
  `nexium.core.config.manager`; it depends on logging, which itself reads
  `Config`, so it is not re-exported here.
"""

from nexium.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
