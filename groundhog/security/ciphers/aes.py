"""AES driven as a stream cipher.

Uses AES in CTR, CFB or OFB mode so that ciphertext length always equals
plaintext length and no padding is involved. Supports AES-128, AES-192 and
AES-256.
"""

from __future__ import annotations

from typing import Any

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import (
    BlockCipherAlgorithm,
    Cipher,
    algorithms,
    modes,
)

from groundhog.security.ciphers.base import StreamCipher


class AESStreamCipher(StreamCipher):
    """Keystream backed by a cryptography cipher context."""

    def __init__(self, context: Any, mode_name: str):
        """Initialize AES stream.

        Args:
            context: Encryptor or decryptor context from ``Cipher``
            mode_name: Mode name, for diagnostics

        """
        self._context = context
        self.mode_name = mode_name

    def xor_key_stream(self, data: bytes) -> bytes:
        """Transform data through the mode's keystream."""
        if not data:
            return b""
        return self._context.update(data)

    def __repr__(self) -> str:
        return f"AESStreamCipher(mode={self.mode_name})"


def new_block_cipher(key: bytes) -> algorithms.AES:
    """Build the AES block cipher for a key.

    Raises:
        ValueError: If the key is not 16, 24 or 32 bytes long

    """
    return algorithms.AES(key)


def _cipher(block: BlockCipherAlgorithm, mode: modes.Mode) -> Cipher:
    return Cipher(block, mode, backend=default_backend())


def new_ctr(block: BlockCipherAlgorithm, iv: bytes) -> StreamCipher:
    """CTR stream; the same constructor serves both directions."""
    return AESStreamCipher(_cipher(block, modes.CTR(iv)).encryptor(), "ctr")


def new_ofb(block: BlockCipherAlgorithm, iv: bytes) -> StreamCipher:
    """OFB stream; the same constructor serves both directions."""
    return AESStreamCipher(_cipher(block, modes.OFB(iv)).encryptor(), "ofb")


def new_cfb_encrypter(block: BlockCipherAlgorithm, iv: bytes) -> StreamCipher:
    """CFB stream for the encrypting direction."""
    return AESStreamCipher(_cipher(block, modes.CFB(iv)).encryptor(), "cfb")


def new_cfb_decrypter(block: BlockCipherAlgorithm, iv: bytes) -> StreamCipher:
    """CFB stream for the decrypting direction."""
    return AESStreamCipher(_cipher(block, modes.CFB(iv)).decryptor(), "cfb")
