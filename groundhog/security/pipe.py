"""Synchronous in-memory pipe for asyncio.

A write does not return until readers have consumed every byte of it, so the
pipe holds no buffer of its own and a slow reader throttles the writer.
Closing either end is synchronous and wakes every parked caller.
"""

from __future__ import annotations

import asyncio

from groundhog.utils.exceptions import ClosedPipeError


class _Pipe:
    """Shared state between a PipeReader and a PipeWriter."""

    def __init__(self) -> None:
        self._pending = memoryview(b"")
        self._write_lock = asyncio.Lock()
        self._changed = asyncio.Event()
        # Error raised to writers once the read end is closed
        self._read_closed: BaseException | None = None
        # Error raised to readers once the write end is closed (None means EOF)
        self._write_closed = False
        self._write_error: BaseException | None = None

    def _notify(self) -> None:
        self._changed.set()
        self._changed = asyncio.Event()

    async def read(self, n: int = -1) -> bytes:
        while True:
            if self._read_closed is not None:
                msg = "read on closed pipe"
                raise ClosedPipeError(msg)
            if self._pending:
                break
            if self._write_closed:
                if self._write_error is not None:
                    raise self._write_error
                return b""
            if n == 0:
                return b""
            await self._changed.wait()

        if n < 0 or n >= len(self._pending):
            chunk = self._pending
        else:
            chunk = self._pending[:n]
        self._pending = self._pending[len(chunk) :]
        if not self._pending:
            self._notify()
        return bytes(chunk)

    async def write(self, data: bytes) -> int:
        async with self._write_lock:
            self._check_writable()
            if not data:
                return 0

            self._pending = memoryview(bytes(data))
            self._notify()
            try:
                while (
                    self._pending
                    and self._read_closed is None
                    and not self._write_closed
                ):
                    await self._changed.wait()
            finally:
                remaining = len(self._pending)
                self._pending = memoryview(b"")

            if remaining:
                self._check_writable()
            return len(data)

    def _check_writable(self) -> None:
        if self._write_closed:
            msg = "write on closed pipe"
            raise ClosedPipeError(msg)
        if self._read_closed is not None:
            raise self._read_closed

    def close_read(self, exc: BaseException | None = None) -> None:
        if self._read_closed is None:
            self._read_closed = exc or ClosedPipeError("read end of pipe closed")
            self._notify()

    def close_write(self, exc: BaseException | None = None) -> None:
        if not self._write_closed:
            self._write_closed = True
            self._write_error = exc
            self._notify()


class PipeReader:
    """Read end of a pipe."""

    def __init__(self, pipe: _Pipe):
        self._pipe = pipe

    async def read(self, n: int = -1) -> bytes:
        """Read up to n bytes of the pending write.

        Blocks until a writer supplies data or the write end is closed.
        Returns b"" at end of stream.
        """
        return await self._pipe.read(n)

    def close(self, exc: BaseException | None = None) -> None:
        """Close the read end; pending and future writes raise exc."""
        self._pipe.close_read(exc)


class PipeWriter:
    """Write end of a pipe."""

    def __init__(self, pipe: _Pipe):
        self._pipe = pipe

    async def write(self, data: bytes) -> int:
        """Write data, blocking until readers have consumed all of it."""
        return await self._pipe.write(data)

    def close(self, exc: BaseException | None = None) -> None:
        """Close the write end; readers see EOF, or exc if given."""
        self._pipe.close_write(exc)


def pipe() -> tuple[PipeReader, PipeWriter]:
    """Create a synchronous in-memory pipe."""
    p = _Pipe()
    return PipeReader(p), PipeWriter(p)
