"""Encrypted TCP relay.

Accepts connections on the listen address and forwards each one to the
upstream address, encrypting or decrypting on the way. Two relays with
swapped key material form an encrypted tunnel:

    client -> [relay encrypt] ==ciphertext==> [relay decrypt] -> service
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Callable

from groundhog.models import RelayMode
from groundhog.security.connection import StreamConnection
from groundhog.security.encrypted_stream import COPY_CHUNK_SIZE
from groundhog.security.encryption import CipherConfig, StreamEncryptDecrypter
from groundhog.utils.exceptions import GroundhogError
from groundhog.utils.logging_config import LoggingContext, set_correlation_id
from groundhog.utils.tasks import BackgroundTaskGroup

if TYPE_CHECKING:  # pragma: no cover
    from groundhog.models import Config
    from groundhog.security.connection import Connection

logger = logging.getLogger(__name__)


async def splice(a: Connection, b: Connection) -> tuple[int, int]:
    """Copy bytes both ways until either direction ends, then close both.

    Returns:
        Bytes copied (a to b, b to a)

    """
    counts = [0, 0]

    async def _copy(dst: Connection, src: Connection, index: int) -> None:
        try:
            while data := await src.read(COPY_CHUNK_SIZE):
                await dst.write(data)
                counts[index] += len(data)
        except (OSError, GroundhogError) as e:
            logger.debug("Splice direction %d stopped: %s", index, e)

    tasks = BackgroundTaskGroup()
    forward = tasks.create(_copy(b, a, 0))
    backward = tasks.create(_copy(a, b, 1))
    try:
        await asyncio.wait({forward, backward}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        await a.close()
        await b.close()
        await tasks.cancel_and_wait()
    return counts[0], counts[1]


class EncryptedRelay:
    """TCP relay that encrypts or decrypts every session."""

    def __init__(
        self,
        config: Config,
        crypter_factory: Callable[[], StreamEncryptDecrypter] | None = None,
    ):
        """Initialize relay.

        Args:
            config: Relay configuration
            crypter_factory: Builds a fresh transform per session (default:
                from ``config.crypto``)

        """
        self.config = config
        self.crypter_factory = crypter_factory or self._default_crypter
        self.server: asyncio.AbstractServer | None = None
        self._sessions: set[StreamConnection] = set()

    def _default_crypter(self) -> StreamEncryptDecrypter:
        return StreamEncryptDecrypter(CipherConfig.from_settings(self.config.crypto))

    @property
    def active_sessions(self) -> int:
        """Number of client connections currently relayed."""
        return len(self._sessions)

    async def start(self) -> tuple[str, int]:
        """Start listening and return the bound address."""
        # Fail on bad key material before accepting anything
        self.crypter_factory().ensure_streams()

        listen = self.config.listen
        self.server = await asyncio.start_server(
            self._handle_client, listen.host, listen.port
        )
        host, port = self.server.sockets[0].getsockname()[:2]
        logger.info(
            "Relay (%s) listening on %s:%d, upstream %s:%d",
            self.config.relay_mode.value,
            host,
            port,
            self.config.upstream.host,
            self.config.upstream.port,
        )
        return host, port

    async def serve_forever(self) -> None:
        """Serve until cancelled."""
        if self.server is None:
            await self.start()
        assert self.server is not None
        try:
            await self.server.serve_forever()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop listening and close every active session."""
        if self.server is None:
            return
        server, self.server = self.server, None
        server.close()
        for client in list(self._sessions):
            await client.close()
        with contextlib.suppress(OSError):
            await server.wait_closed()
        logger.info("Relay stopped")

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        client = StreamConnection(reader, writer)
        session_id = set_correlation_id()
        self._sessions.add(client)
        try:
            upstream = await self._open_upstream()
            if upstream is None:
                await client.close()
                return

            crypter = self.crypter_factory()
            try:
                if self.config.relay_mode == RelayMode.ENCRYPT:
                    wrapped = crypter.ciphertext(client)
                else:
                    wrapped = crypter.plaintext(client)
            except GroundhogError as e:
                logger.error("Session setup failed: %s", e)
                await client.close()
                await upstream.close()
                return

            with LoggingContext(
                "relay_session",
                log_level=logging.INFO,
                logger=logger,
                session=session_id,
                peer=str(client.peername),
            ):
                sent, received = await splice(wrapped, upstream)
                await crypter.tasks.wait()
                logger.debug("Relayed %d bytes up, %d bytes down", sent, received)
        finally:
            self._sessions.discard(client)

    async def _open_upstream(self) -> StreamConnection | None:
        upstream = self.config.upstream
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(upstream.host, upstream.port),
                timeout=upstream.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(
                "Cannot reach upstream %s:%d: %s", upstream.host, upstream.port, e
            )
            return None
        return StreamConnection(reader, writer)
