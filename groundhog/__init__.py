"""groundhog - stream-cipher connection transform for encrypted tunnels."""

from __future__ import annotations

__version__ = "0.1.0"
