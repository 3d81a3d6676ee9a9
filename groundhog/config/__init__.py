"""Configuration management.

This module handles configuration loading and validation.
"""

from __future__ import annotations

from groundhog.config.config import (
    ConfigManager,
    generate_default_config,
    get_config,
    init_config,
    reload_config,
    set_config,
)
from groundhog.models import Config

__all__ = [
    "Config",
    "ConfigManager",
    "generate_default_config",
    "get_config",
    "init_config",
    "reload_config",
    "set_config",
]
