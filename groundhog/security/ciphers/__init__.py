"""Stream cipher implementations for connection encryption.

Provides:
- AES block cipher driven as a stream cipher (CTR, CFB and OFB modes)
- ChaCha20 stream cipher (pre-built streams)
"""

from __future__ import annotations

from groundhog.security.ciphers.aes import (
    AESStreamCipher,
    new_block_cipher,
    new_cfb_decrypter,
    new_cfb_encrypter,
    new_ctr,
    new_ofb,
)
from groundhog.security.ciphers.base import StreamCipher, StreamConstructor
from groundhog.security.ciphers.chacha20 import ChaCha20Stream

__all__ = [
    "AESStreamCipher",
    "ChaCha20Stream",
    "StreamCipher",
    "StreamConstructor",
    "new_block_cipher",
    "new_cfb_decrypter",
    "new_cfb_encrypter",
    "new_ctr",
    "new_ofb",
]
