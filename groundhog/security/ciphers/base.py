"""Base stream cipher interface.

Defines the abstract stream state shared by every cipher suite and the
constructor signature used to turn a block cipher into a stream.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from cryptography.hazmat.primitives.ciphers import BlockCipherAlgorithm


class StreamCipher(ABC):
    """Abstract keystream state.

    A stream is advanced by every call and must only be driven by one
    direction of one session.
    """

    @abstractmethod
    def xor_key_stream(self, data: bytes) -> bytes:
        """Combine data with the next len(data) keystream bytes.

        Args:
            data: Plaintext to encrypt or ciphertext to decrypt

        Returns:
            Transformed data, same length as the input

        """


# (block cipher, iv) -> stream; selects the mode of operation.
StreamConstructor = Callable[[BlockCipherAlgorithm, bytes], StreamCipher]
