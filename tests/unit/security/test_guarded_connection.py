"""Tests for connection wrappers.

Covers:
- StreamConnection probes, reads, writes and idempotent close
- PipeConnection delegation
- GuardedConnection probe-before-delegate behavior
- GuardedConnection close-once under concurrent callers
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from groundhog.security.connection import (
    Connection,
    GuardedConnection,
    PipeConnection,
)
from groundhog.security.pipe import pipe
from groundhog.utils.exceptions import ClosedPipeError, ConnectionClosedError
from tests.conftest import read_exactly

pytestmark = [pytest.mark.unit, pytest.mark.connection]


@pytest.fixture
def probe():
    """Mock real connection whose probes succeed."""
    conn = AsyncMock(spec=Connection)
    conn.read.return_value = b""
    conn.write.return_value = 0
    return conn


@pytest.fixture
def data_path():
    """Mock data path."""
    conn = AsyncMock(spec=Connection)
    conn.read.return_value = b"payload"
    conn.write.return_value = 4
    return conn


class TestStreamConnection:
    """Tests for StreamConnection."""

    @pytest.mark.asyncio
    async def test_read_write(self, stream_pair):
        """Test bytes written on one end are read on the other."""
        left, right = stream_pair

        assert await left.write(b"ping") == 4
        assert await read_exactly(right, 4) == b"ping"

    @pytest.mark.asyncio
    async def test_probes_on_open_connection(self, stream_pair):
        """Test zero-length read/write succeed without blocking."""
        left, _right = stream_pair

        assert await asyncio.wait_for(left.read(0), timeout=1.0) == b""
        assert await asyncio.wait_for(left.write(b""), timeout=1.0) == 0

    @pytest.mark.asyncio
    async def test_probes_fail_after_close(self, stream_pair):
        """Test probes raise ConnectionClosedError once closed."""
        left, _right = stream_pair

        await left.close()

        assert left.closed
        with pytest.raises(ConnectionClosedError):
            await left.read(0)
        with pytest.raises(ConnectionClosedError):
            await left.write(b"")

    @pytest.mark.asyncio
    async def test_peer_close_gives_eof(self, stream_pair):
        """Test the remote end reads EOF after a close."""
        left, right = stream_pair

        await left.close()

        assert await asyncio.wait_for(right.read(10), timeout=1.0) == b""

    @pytest.mark.asyncio
    async def test_close_twice(self, stream_pair):
        """Test a second close returns quietly."""
        left, _right = stream_pair

        await left.close()
        await left.close()

    @pytest.mark.asyncio
    async def test_reader_exception_reported_by_probe(self):
        """Test a stored reader exception is raised by the probe."""
        from groundhog.security.connection import StreamConnection

        reader = asyncio.StreamReader()
        reader.set_exception(ConnectionResetError("reset by peer"))
        writer = MagicMock()
        writer.is_closing.return_value = False
        conn = StreamConnection(reader, writer)

        with pytest.raises(ConnectionResetError):
            await conn.read(0)


class TestPipeConnection:
    """Tests for PipeConnection."""

    @pytest.mark.asyncio
    async def test_reads_and_writes_separate_pipes(self):
        """Test reads come from one pipe and writes go to the other."""
        in_reader, in_writer = pipe()
        out_reader, out_writer = pipe()
        conn = PipeConnection(in_reader, out_writer)

        write_task = asyncio.create_task(conn.write(b"out"))
        assert await out_reader.read() == b"out"
        await write_task

        feed_task = asyncio.create_task(in_writer.write(b"in"))
        assert await conn.read() == b"in"
        await feed_task

    @pytest.mark.asyncio
    async def test_close_closes_both_ends(self):
        """Test close releases both pipe partners."""
        in_reader, in_writer = pipe()
        out_reader, out_writer = pipe()
        conn = PipeConnection(in_reader, out_writer)

        await conn.close()

        assert await out_reader.read() == b""
        with pytest.raises(ClosedPipeError):
            await in_writer.write(b"x")


class TestGuardedConnection:
    """Tests for GuardedConnection."""

    @pytest.mark.asyncio
    async def test_read_probes_then_delegates(self, data_path, probe):
        """Test read issues a zero-length probe read before delegating."""
        conn = GuardedConnection(data_path, probe)

        assert await conn.read(16) == b"payload"

        probe.read.assert_awaited_once_with(0)
        data_path.read.assert_awaited_once_with(16)

    @pytest.mark.asyncio
    async def test_write_probes_then_delegates(self, data_path, probe):
        """Test write issues a zero-length probe write before delegating."""
        conn = GuardedConnection(data_path, probe)

        assert await conn.write(b"data") == 4

        probe.write.assert_awaited_once_with(b"")
        data_path.write.assert_awaited_once_with(b"data")

    @pytest.mark.asyncio
    async def test_failed_probe_skips_data_path(self, data_path, probe):
        """Test a probe error is returned without touching the data path."""
        probe.read.side_effect = ConnectionClosedError("closed")
        probe.write.side_effect = ConnectionClosedError("closed")
        conn = GuardedConnection(data_path, probe)

        with pytest.raises(ConnectionClosedError):
            await conn.read(16)
        with pytest.raises(ConnectionClosedError):
            await conn.write(b"data")

        data_path.read.assert_not_awaited()
        data_path.write.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_closes_data_path_and_probe(self, data_path, probe):
        """Test close targets the data path and the real connection."""
        conn = GuardedConnection(data_path, probe)

        await conn.close()

        assert conn.closed
        data_path.close.assert_awaited_once()
        probe.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_close_runs_once(self, data_path, probe):
        """Test two near-simultaneous closes close the real connection once."""
        conn = GuardedConnection(data_path, probe)

        results = await asyncio.gather(conn.close(), conn.close())

        assert results == [None, None]
        probe.close.assert_awaited_once()
        await conn.close()
        probe.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dead_peer_detected(self, stream_pair):
        """Test operations fail promptly after the real connection closes."""
        left, _right = stream_pair
        in_reader, _in_writer = pipe()
        _out_reader, out_writer = pipe()
        conn = GuardedConnection(PipeConnection(in_reader, out_writer), left)

        await left.close()

        # Idle pipes would block forever; the probe must fail first.
        with pytest.raises(ConnectionClosedError):
            await asyncio.wait_for(conn.read(10), timeout=1.0)
        with pytest.raises(ConnectionClosedError):
            await asyncio.wait_for(conn.write(b"data"), timeout=1.0)

    @pytest.mark.asyncio
    async def test_close_releases_parked_read(self, stream_pair):
        """Test closing the session wakes a read parked on the pipe."""
        left, _right = stream_pair
        in_reader, _in_writer = pipe()
        _out_reader, out_writer = pipe()
        conn = GuardedConnection(PipeConnection(in_reader, out_writer), left)

        read_task = asyncio.create_task(conn.read(10))
        await asyncio.sleep(0.01)
        assert not read_task.done()

        await conn.close()

        with pytest.raises(ClosedPipeError):
            await asyncio.wait_for(read_task, timeout=1.0)

    @pytest.mark.asyncio
    async def test_async_context_manager(self, data_path, probe):
        """Test leaving an async with block closes the connection."""
        async with GuardedConnection(data_path, probe) as conn:
            assert not conn.closed

        assert conn.closed
        probe.close.assert_awaited_once()
