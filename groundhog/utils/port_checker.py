"""Port availability checking utilities."""

from __future__ import annotations

import socket
import sys


def get_free_port(host: str = "127.0.0.1") -> int:
    """Ask the OS for a TCP port that is currently free on host.

    The port is released before returning, so another process may still
    claim it before the caller binds.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


def is_port_available(host: str, port: int) -> tuple[bool, str | None]:
    """Check if a TCP port is available for binding.

    Args:
        host: Host address to check (e.g., "127.0.0.1", "0.0.0.0")
        port: Port number to check

    Returns:
        Tuple of (is_available, error_message)
        - is_available: True if port is available, False otherwise
        - error_message: None if available, otherwise error description

    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as test_sock:
        test_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            test_sock.bind((host, port))
        except OSError as e:
            error_code = e.errno
            # Windows: WSAEADDRINUSE / WSAEACCES
            if sys.platform == "win32" and error_code == 10048:
                return (False, f"Port {port} is already in use")
            if sys.platform == "win32" and error_code == 10013:
                return (False, f"Permission denied binding to {host}:{port}")
            if error_code == 98 or error_code == 48:  # EADDRINUSE (Linux / macOS)
                return (False, f"Port {port} is already in use")
            if error_code == 13:  # EACCES
                return (False, f"Permission denied binding to {host}:{port}")
            return (False, f"Cannot bind to {host}:{port}: {e}")
    return (True, None)
