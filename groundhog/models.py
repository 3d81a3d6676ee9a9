"""Pydantic models for groundhog.

Provides validated configuration models for the relay, its key material and
logging.
"""

from __future__ import annotations

import ipaddress
import re
from enum import Enum

from pydantic import BaseModel, Field, field_validator

DEFAULT_LISTEN_HOST = "127.0.0.1"

_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CipherMode(str, Enum):
    """Stream cipher used on the encrypted link."""

    CTR = "ctr"
    CFB = "cfb"
    OFB = "ofb"
    CHACHA20 = "chacha20"


class RelayMode(str, Enum):
    """Which side of the relay carries ciphertext."""

    # Plaintext clients in, ciphertext to upstream
    ENCRYPT = "encrypt"
    # Ciphertext clients in, plaintext to upstream
    DECRYPT = "decrypt"


def is_valid_host(host: str) -> bool:
    """Check whether host is an IP address or a well-formed hostname."""
    if not host:
        return False
    try:
        ipaddress.ip_address(host)
    except ValueError:
        pass
    else:
        return True
    if len(host) > 253:
        return False
    return all(_HOSTNAME_LABEL.match(label) for label in host.rstrip(".").split("."))


class ListenConfig(BaseModel):
    """Local listen address."""

    host: str = Field(default=DEFAULT_LISTEN_HOST, description="Listen host")
    port: int = Field(default=8388, description="Listen port")

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate listen host."""
        if not is_valid_host(v):
            msg = "invalid listen host"
            raise ValueError(msg)
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate listen port."""
        if not 1 <= v <= 65535:
            msg = "invalid listen port"
            raise ValueError(msg)
        return v


class UpstreamConfig(BaseModel):
    """Address the relay forwards each session to."""

    host: str = Field(default=DEFAULT_LISTEN_HOST, description="Upstream host")
    port: int = Field(default=8389, ge=1, le=65535, description="Upstream port")
    connect_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Upstream connect timeout in seconds",
    )

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate upstream host."""
        if not is_valid_host(v):
            msg = "invalid upstream host"
            raise ValueError(msg)
        return v


class CryptoConfig(BaseModel):
    """Key material for the encrypted link, as hex strings.

    Peer relays use swapped pairs: one side's encrypt key/IV is the other
    side's decrypt key/IV.
    """

    mode: CipherMode = Field(default=CipherMode.CTR, description="Cipher mode")
    encrypt_key: str | None = Field(default=None, description="Encrypt key (hex)")
    decrypt_key: str | None = Field(default=None, description="Decrypt key (hex)")
    encrypt_iv: str | None = Field(default=None, description="Encrypt IV (hex)")
    decrypt_iv: str | None = Field(default=None, description="Decrypt IV (hex)")

    @field_validator("encrypt_key", "decrypt_key", "encrypt_iv", "decrypt_iv")
    @classmethod
    def validate_hex(cls, v: str | None) -> str | None:
        """Validate that key material is hex encoded."""
        if v is None:
            return v
        try:
            bytes.fromhex(v)
        except ValueError as e:
            msg = f"key material must be hex encoded: {e}"
            raise ValueError(msg) from e
        return v

    def material(self) -> dict[str, bytes | None]:
        """Decode the hex fields to bytes."""
        return {
            name: bytes.fromhex(value) if value is not None else None
            for name, value in (
                ("encrypt_key", self.encrypt_key),
                ("decrypt_key", self.decrypt_key),
                ("encrypt_iv", self.encrypt_iv),
                ("decrypt_iv", self.decrypt_iv),
            )
        }


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(default=None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Write JSON lines to the log file",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include session correlation IDs",
    )


class Config(BaseModel):
    """Main configuration model."""

    relay_mode: RelayMode = Field(default=RelayMode.ENCRYPT, description="Relay mode")
    listen: ListenConfig = Field(default_factory=ListenConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    crypto: CryptoConfig = Field(default_factory=CryptoConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
