"""ChaCha20 stream cipher.

ChaCha20 is not a block cipher mode, so it is only available as a pre-built
stream. Uses 32-byte keys and 16-byte nonces (the cryptography library
expects the 4-byte counter prefixed to the 12-byte nonce).
"""

from __future__ import annotations

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from groundhog.security.ciphers.base import StreamCipher


class ChaCha20Stream(StreamCipher):
    """ChaCha20 keystream state."""

    def __init__(self, key: bytes, nonce: bytes):
        """Initialize ChaCha20 stream.

        Args:
            key: Encryption key (32 bytes)
            nonce: Nonce (16 bytes / 128 bits)

        Raises:
            ValueError: If key or nonce size is invalid

        """
        if len(key) != 32:
            msg = f"ChaCha20 key must be 32 bytes, got {len(key)}"
            raise ValueError(msg)
        if len(nonce) != 16:
            msg = f"ChaCha20 nonce must be 16 bytes, got {len(nonce)}"
            raise ValueError(msg)

        algorithm = algorithms.ChaCha20(key, nonce)
        # Encryption and decryption apply the same keystream
        self._context = Cipher(
            algorithm, mode=None, backend=default_backend()
        ).encryptor()

    def xor_key_stream(self, data: bytes) -> bytes:
        """Transform data through the ChaCha20 keystream."""
        if not data:
            return b""
        return self._context.update(data)
