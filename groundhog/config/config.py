"""Configuration management for groundhog.

Provides centralized configuration with TOML support, validation, and
hierarchical loading from defaults → config file → environment → CLI.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import toml
from pydantic import ValidationError as PydanticValidationError

from groundhog.models import DEFAULT_LISTEN_HOST, Config, ListenConfig
from groundhog.utils.exceptions import ConfigurationError
from groundhog.utils.logging_config import setup_logging
from groundhog.utils.port_checker import get_free_port

logger = logging.getLogger(__name__)

# Global configuration instance
_config_manager: ConfigManager | None = None

# Mapping of environment variables to config paths
ENV_MAPPINGS: dict[str, str] = {
    "GROUNDHOG_RELAY_MODE": "relay_mode",
    "GROUNDHOG_LISTEN_HOST": "listen.host",
    "GROUNDHOG_LISTEN_PORT": "listen.port",
    "GROUNDHOG_UPSTREAM_HOST": "upstream.host",
    "GROUNDHOG_UPSTREAM_PORT": "upstream.port",
    "GROUNDHOG_UPSTREAM_CONNECT_TIMEOUT": "upstream.connect_timeout",
    "GROUNDHOG_CIPHER_MODE": "crypto.mode",
    "GROUNDHOG_ENCRYPT_KEY": "crypto.encrypt_key",
    "GROUNDHOG_DECRYPT_KEY": "crypto.decrypt_key",
    "GROUNDHOG_ENCRYPT_IV": "crypto.encrypt_iv",
    "GROUNDHOG_DECRYPT_IV": "crypto.decrypt_iv",
    "GROUNDHOG_LOG_LEVEL": "observability.log_level",
    "GROUNDHOG_LOG_FILE": "observability.log_file",
    "GROUNDHOG_STRUCTURED_LOGGING": "observability.structured_logging",
    "GROUNDHOG_LOG_CORRELATION_ID": "observability.log_correlation_id",
}

# Values that must stay strings even when they look numeric
_STRING_PATHS = frozenset(
    {
        "listen.host",
        "upstream.host",
        "crypto.encrypt_key",
        "crypto.decrypt_key",
        "crypto.encrypt_iv",
        "crypto.decrypt_iv",
        "observability.log_file",
    }
)


def _parse_env_value(raw: str, path: str) -> bool | int | float | str:
    if path in _STRING_PATHS:
        return raw
    low = raw.lower()
    if low in {"true", "1", "yes", "on"}:
        return True
    if low in {"false", "0", "no", "off"}:
        return False
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


def _merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge configuration dictionaries recursively."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_config(result[key], value)
        else:
            result[key] = value
    return result


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(
        self,
        config_file: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
        configure_logging: bool = True,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for groundhog.toml
            overrides: Dotted-path overrides applied last (e.g. from the CLI)
            configure_logging: Whether to set up logging from the loaded config

        """
        self.config_file = self._find_config_file(config_file)
        self.overrides = overrides or {}
        self.config = self._load_config()
        if configure_logging:
            setup_logging(self.config.observability)

    def _find_config_file(self, config_file: str | Path | None) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / "groundhog.toml",
            Path.home() / ".config" / "groundhog" / "groundhog.toml",
            Path.home() / ".groundhog.toml",
        ]
        for path in search_paths:
            if path.exists():
                return path
        return None

    def _load_config(self) -> Config:
        """Load configuration from file, environment and overrides."""
        config_data: dict[str, Any] = {}

        if self.config_file is not None:
            if not self.config_file.exists():
                msg = f"Config file not found: {self.config_file}"
                raise ConfigurationError(msg, {"path": str(self.config_file)})
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data = toml.load(f)
            except (OSError, toml.TomlDecodeError) as e:
                msg = f"Failed to load config file {self.config_file}: {e}"
                raise ConfigurationError(msg) from e
            logger.debug("Loaded config file %s", self.config_file)

        config_data = _merge_config(config_data, self._get_env_config())

        override_data: dict[str, Any] = {}
        for path, value in self.overrides.items():
            if value is not None:
                _set_nested(override_data, path, value)
        config_data = _merge_config(config_data, override_data)

        try:
            return Config(**config_data)
        except PydanticValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}
        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw, cfg_path))
        return env_config

    def export(self) -> str:
        """Export current configuration as TOML."""
        data = self.config.model_dump(mode="json", exclude_none=True)
        return toml.dumps(data)


def generate_default_config() -> ListenConfig:
    """Listen on the loopback interface, on a port that is free right now."""
    port = get_free_port(DEFAULT_LISTEN_HOST)
    return ListenConfig(host=DEFAULT_LISTEN_HOST, port=port)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(
    config_file: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file, overrides)
    return _config_manager


def reload_config() -> Config:
    """Reload configuration from file."""
    if _config_manager is None:
        msg = "Configuration not initialized"
        raise ConfigurationError(msg)

    _config_manager.config = _config_manager._load_config()  # noqa: SLF001
    setup_logging(_config_manager.config.observability)
    return _config_manager.config


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    _config_manager.config = new_config
    setup_logging(new_config.observability)
