"""Exception hierarchy for groundhog.

Provides the error taxonomy shared by the cipher builder, the connection
transforms and the relay.
"""

from __future__ import annotations

from typing import Any


class GroundhogError(Exception):
    """Base exception for all groundhog errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize groundhog error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class NetworkError(GroundhogError):
    """Network-related errors."""


class ConnectionClosedError(NetworkError):
    """I/O attempted on a connection that is already closed."""


class ClosedPipeError(NetworkError):
    """I/O attempted on a closed local pipe."""


class ValidationError(GroundhogError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class SecurityError(GroundhogError):
    """Security-related errors."""


class CipherError(SecurityError):
    """Cipher errors."""


class CipherConstructionError(CipherError):
    """Key or IV material rejected while building a cipher."""
