"""Encrypting and decrypting stream wrappers.

Wraps a ``Connection`` so that bytes pass through a ``StreamCipher`` on their
way in or out, and provides the copy loop that drives a transform direction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from groundhog.security.ciphers.base import StreamCipher
    from groundhog.security.connection import Connection
    from groundhog.security.pipe import PipeReader, PipeWriter

# Bytes requested per read by the copy loop
COPY_CHUNK_SIZE = 32 * 1024


class EncryptedStreamReader:
    """Stream reader wrapper.

    Reads from an underlying source and transforms the bytes through the
    cipher stream as they are read.
    """

    def __init__(self, reader: Connection | PipeReader, cipher: StreamCipher):
        """Initialize encrypted stream reader.

        Args:
            reader: Underlying source
            cipher: Cipher stream applied to every byte read

        """
        self.reader = reader
        self.cipher = cipher

    async def read(self, n: int = -1) -> bytes:
        """Read and transform data.

        Args:
            n: Number of bytes to read (-1 for whatever is available)

        Returns:
            Transformed data, b"" at end of stream

        """
        data = await self.reader.read(n)
        if not data:
            return b""
        # For stream ciphers, encrypted size == decrypted size
        return self.cipher.xor_key_stream(data)

    def __getattr__(self, name: str) -> Any:
        """Delegate other attributes to underlying reader."""
        return getattr(self.reader, name)


class EncryptedStreamWriter:
    """Stream writer wrapper.

    Transforms data through the cipher stream before writing it.
    """

    def __init__(self, writer: Connection | PipeWriter, cipher: StreamCipher):
        """Initialize encrypted stream writer.

        Args:
            writer: Underlying destination
            cipher: Cipher stream applied to every byte written

        """
        self.writer = writer
        self.cipher = cipher

    async def write(self, data: bytes) -> int:
        """Transform and write data.

        Args:
            data: Data to transform and write

        Returns:
            Number of bytes written

        """
        if not data:
            return 0
        return await self.writer.write(self.cipher.xor_key_stream(data))

    def __getattr__(self, name: str) -> Any:
        """Delegate other attributes to underlying writer."""
        return getattr(self.writer, name)


async def copy_stream(dst: Any, src: Any, chunk_size: int = COPY_CHUNK_SIZE) -> int:
    """Copy from src to dst until src reaches end of stream.

    Errors from either side propagate to the caller.

    Returns:
        Total number of bytes copied

    """
    total = 0
    while True:
        data = await src.read(chunk_size)
        if not data:
            return total
        await dst.write(data)
        total += len(data)
