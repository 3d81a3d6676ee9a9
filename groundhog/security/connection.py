"""Connection abstractions for the cipher transforms.

Provides:
- ``Connection``: the read/write/close capability every transform consumes
- ``StreamConnection``: a connection over an asyncio stream pair
- ``PipeConnection``: the local, pipe-backed data path
- ``GuardedConnection``: a pipe-backed connection that probes the real
  connection before every operation and closes it on ``close()``
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from groundhog.utils.exceptions import ConnectionClosedError

if TYPE_CHECKING:  # pragma: no cover
    from groundhog.security.pipe import PipeReader, PipeWriter

logger = logging.getLogger(__name__)


class Connection(ABC):
    """Duplex byte stream."""

    @abstractmethod
    async def read(self, n: int = -1) -> bytes:
        """Read up to n bytes; b"" means end of stream.

        A zero-length read is a liveness probe: it returns b"" on a usable
        connection and raises once the connection is closed.
        """

    @abstractmethod
    async def write(self, data: bytes) -> int:
        """Write data and return the number of bytes written.

        A zero-length write is a liveness probe.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""

    async def __aenter__(self) -> Connection:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class StreamConnection(Connection):
    """Connection over an asyncio ``StreamReader``/``StreamWriter`` pair."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        read_size: int = 65536,
    ):
        """Initialize stream connection.

        Args:
            reader: Underlying stream reader
            writer: Underlying stream writer
            read_size: Bytes requested per read when n is negative

        """
        self.reader = reader
        self.writer = writer
        self.read_size = read_size
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the connection was closed locally or by the transport."""
        return self._closed or self.writer.is_closing()

    def _check_open(self) -> None:
        if self.closed:
            msg = "use of closed connection"
            raise ConnectionClosedError(msg, {"peer": self.peername})
        exc = self.reader.exception()
        if exc is not None:
            raise exc

    async def read(self, n: int = -1) -> bytes:
        """Read up to n bytes from the stream."""
        self._check_open()
        if n == 0:
            return b""
        return await self.reader.read(self.read_size if n < 0 else n)

    async def write(self, data: bytes) -> int:
        """Write data and drain the transport buffer."""
        self._check_open()
        if not data:
            return 0
        self.writer.write(data)
        await self.writer.drain()
        return len(data)

    async def close(self) -> None:
        """Close the transport once; later calls return immediately."""
        if self._closed:
            return
        self._closed = True
        self.writer.close()
        with contextlib.suppress(OSError):
            await self.writer.wait_closed()

    @property
    def peername(self) -> Any:
        """Remote address of the transport, if known."""
        return self.writer.get_extra_info("peername")


class PipeConnection(Connection):
    """Local data path built from the read end of one pipe and the write end of another."""

    def __init__(self, reader: PipeReader, writer: PipeWriter):
        self.reader = reader
        self.writer = writer

    async def read(self, n: int = -1) -> bytes:
        return await self.reader.read(n)

    async def write(self, data: bytes) -> int:
        return await self.writer.write(data)

    async def close(self) -> None:
        self.reader.close()
        self.writer.close()


class GuardedConnection(Connection):
    """Pipe-backed connection tied to the liveness of a real connection.

    Reads and writes go to ``data``; before each one a zero-length probe is
    issued against ``probe`` so that a closed real connection is reported
    instead of blocking on an idle pipe. ``close()`` releases the local pipe
    ends and closes ``probe``; it is shared by both transform tasks and runs
    its body only once.

    The probe only guards entry into a pipe operation. A call already parked
    on the pipe is released when the session is closed, which happens as soon
    as either task sees end of stream or an error on the real connection. If
    the real connection dies without either task noticing (a silently
    half-open TCP peer), a parked call keeps waiting; no timeout is applied.
    """

    def __init__(self, data: Connection, probe: Connection):
        """Initialize guarded connection.

        Args:
            data: Local pipe-backed data path
            probe: Real connection used for liveness probes and as close target

        """
        self.data = data
        self.probe = probe
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self, n: int = -1) -> bytes:
        """Probe the real connection, then read from the data path."""
        await self.probe.read(0)
        return await self.data.read(n)

    async def write(self, data: bytes) -> int:
        """Probe the real connection, then write to the data path."""
        await self.probe.write(b"")
        return await self.data.write(data)

    async def close(self) -> None:
        """Close the data path and the real connection, once."""
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing guarded connection")
        await self.data.close()
        await self.probe.close()
