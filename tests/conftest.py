"""Pytest configuration and shared fixtures for groundhog tests."""

from __future__ import annotations

import asyncio
import logging
import socket

import pytest
import pytest_asyncio

from groundhog.security.connection import StreamConnection

# AES-128 key 00..0f and an all-zero IV
TEST_KEY = bytes(range(16))
TEST_IV = bytes(16)


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("unit", "marks tests as unit tests"),
        ("integration", "marks tests as integration tests"),
        ("security", "marks tests as cipher/transform tests"),
        ("connection", "marks tests as connection and pipe tests"),
        ("config", "marks tests as configuration tests"),
        ("relay", "marks tests as relay tests"),
        ("cli", "marks tests as CLI tests"),
        ("slow", "marks tests as slow (deselect with '-m \"not slow\"')"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_groundhog_env(monkeypatch):
    """Keep GROUNDHOG_* variables from the host out of config tests."""
    import os

    for name in list(os.environ):
        if name.startswith("GROUNDHOG_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)


async def open_stream_pair() -> tuple[StreamConnection, StreamConnection]:
    """Create two connected StreamConnections over a socket pair."""
    left_sock, right_sock = socket.socketpair()
    left_reader, left_writer = await asyncio.open_connection(sock=left_sock)
    right_reader, right_writer = await asyncio.open_connection(sock=right_sock)
    return (
        StreamConnection(left_reader, left_writer),
        StreamConnection(right_reader, right_writer),
    )


@pytest_asyncio.fixture
async def stream_pair():
    """Connected (left, right) StreamConnections, closed after the test."""
    left, right = await open_stream_pair()
    yield left, right
    await left.close()
    await right.close()


async def read_exactly(conn, n: int, timeout: float = 5.0) -> bytes:
    """Read n bytes from a connection, however it chunks them."""
    buf = b""
    while len(buf) < n:
        chunk = await asyncio.wait_for(conn.read(n - len(buf)), timeout=timeout)
        if not chunk:
            break
        buf += chunk
    return buf
