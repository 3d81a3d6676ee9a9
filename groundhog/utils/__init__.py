"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from groundhog.utils.exceptions import (
    CipherConstructionError,
    ClosedPipeError,
    ConfigurationError,
    ConnectionClosedError,
    GroundhogError,
    NetworkError,
)
from groundhog.utils.logging_config import get_logger, setup_logging

__all__ = [
    "CipherConstructionError",
    "ClosedPipeError",
    "ConfigurationError",
    "ConnectionClosedError",
    "GroundhogError",
    "NetworkError",
    "get_logger",
    "setup_logging",
]
