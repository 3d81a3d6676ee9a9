"""Connection encryption for groundhog.

Provides the stream-cipher duplex transform:
- Stream cipher suites (AES in CTR/CFB/OFB mode, ChaCha20)
- Synchronous local pipes
- Guarded, pipe-backed connections
- Ciphertext/plaintext connection transforms
"""

from groundhog.security.connection import (
    Connection,
    GuardedConnection,
    StreamConnection,
)
from groundhog.security.encryption import (
    CipherConfig,
    CipherStreams,
    StreamEncryptDecrypter,
    build_streams,
    ensure_streams,
)

__all__ = [
    "CipherConfig",
    "CipherStreams",
    "Connection",
    "GuardedConnection",
    "StreamConnection",
    "StreamEncryptDecrypter",
    "build_streams",
    "ensure_streams",
]
