"""Stream-cipher duplex connection transforms.

Turns a plaintext connection into the matching ciphertext connection, or the
other way round. Each transform runs one encrypt task and one decrypt task,
joined to the caller through a pair of synchronous local pipes.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NamedTuple

from groundhog.models import CipherMode
from groundhog.security.ciphers.aes import (
    new_block_cipher,
    new_cfb_decrypter,
    new_cfb_encrypter,
    new_ctr,
    new_ofb,
)
from groundhog.security.ciphers.chacha20 import ChaCha20Stream
from groundhog.security.connection import GuardedConnection, PipeConnection
from groundhog.security.encrypted_stream import (
    EncryptedStreamReader,
    EncryptedStreamWriter,
    copy_stream,
)
from groundhog.security.pipe import pipe
from groundhog.utils.exceptions import (
    CipherConstructionError,
    ConfigurationError,
    GroundhogError,
)
from groundhog.utils.logging_config import set_correlation_id
from groundhog.utils.tasks import BackgroundTaskGroup

if TYPE_CHECKING:  # pragma: no cover
    from groundhog.models import CryptoConfig
    from groundhog.security.ciphers.base import StreamCipher, StreamConstructor
    from groundhog.security.connection import Connection

logger = logging.getLogger(__name__)

# (encrypter, decrypter) constructors per block cipher mode
MODE_CONSTRUCTORS: dict[CipherMode, tuple[StreamConstructor, StreamConstructor]] = {
    CipherMode.CTR: (new_ctr, new_ctr),
    CipherMode.CFB: (new_cfb_encrypter, new_cfb_decrypter),
    CipherMode.OFB: (new_ofb, new_ofb),
}


@dataclass
class CipherConfig:
    """Key material and stream state for both directions of one session.

    For each direction either a ready stream or the complete
    (key, constructor, IV) triple must be present. Streams are advanced as
    data flows, so an instance must not be shared by concurrent sessions.
    """

    encrypt_key: bytes | None = None
    decrypt_key: bytes | None = None

    stream_encrypter: StreamConstructor | None = None
    stream_decrypter: StreamConstructor | None = None

    encrypt_stream: StreamCipher | None = None
    decrypt_stream: StreamCipher | None = None

    encrypt_iv: bytes | None = None
    decrypt_iv: bytes | None = None

    @classmethod
    def from_settings(cls, settings: CryptoConfig) -> CipherConfig:
        """Build a fresh config from validated hex settings.

        Raises:
            ConfigurationError: ChaCha20 key material is missing
            CipherConstructionError: ChaCha20 key material is rejected

        """
        material = settings.material()
        if settings.mode == CipherMode.CHACHA20:
            return cls(
                encrypt_stream=_chacha20_stream("encrypt", material),
                decrypt_stream=_chacha20_stream("decrypt", material),
            )

        encrypter, decrypter = MODE_CONSTRUCTORS[settings.mode]
        return cls(stream_encrypter=encrypter, stream_decrypter=decrypter, **material)


def _chacha20_stream(direction: str, material: dict[str, bytes | None]) -> StreamCipher:
    key = material[f"{direction}_key"]
    nonce = material[f"{direction}_iv"]
    if not key:
        msg = f"{direction} key must be set"
        raise ConfigurationError(msg, {"field": f"{direction}_key"})
    if not nonce:
        msg = f"{direction} IV must be set"
        raise ConfigurationError(msg, {"field": f"{direction}_iv"})
    try:
        return ChaCha20Stream(key, nonce)
    except ValueError as e:
        raise CipherConstructionError(str(e), {"direction": direction}) from e


class CipherStreams(NamedTuple):
    """Materialized stream state for one session."""

    encrypt: StreamCipher
    decrypt: StreamCipher


def _build_stream(
    direction: str,
    stream: StreamCipher | None,
    key: bytes | None,
    constructor: StreamConstructor | None,
    iv: bytes | None,
) -> StreamCipher:
    if stream is not None:
        return stream

    if not key:
        msg = f"at least one of {direction} stream or {direction} key must be set"
        raise ConfigurationError(msg, {"field": f"{direction}_key"})
    if constructor is None:
        msg = f"{direction} stream constructor must be set"
        raise ConfigurationError(msg, {"field": f"stream_{direction}er"})
    if not iv:
        msg = f"{direction} IV must be set"
        raise ConfigurationError(msg, {"field": f"{direction}_iv"})

    try:
        block = new_block_cipher(key)
    except ValueError as e:
        msg = f"invalid {direction} key: {e}"
        raise CipherConstructionError(
            msg, {"field": f"{direction}_key", "key_length": len(key)}
        ) from e

    try:
        return constructor(block, iv)
    except ValueError as e:
        msg = f"invalid {direction} IV: {e}"
        raise CipherConstructionError(
            msg, {"field": f"{direction}_iv", "iv_length": len(iv)}
        ) from e


def build_streams(config: CipherConfig) -> CipherStreams:
    """Materialize both cipher streams without modifying config.

    Ready streams are used as they are. Otherwise the direction's key,
    constructor and IV are required.

    Raises:
        ConfigurationError: A direction has neither a stream nor a complete triple
        CipherConstructionError: The block cipher or the mode rejected the key or IV

    """
    encrypt = _build_stream(
        "encrypt",
        config.encrypt_stream,
        config.encrypt_key,
        config.stream_encrypter,
        config.encrypt_iv,
    )
    decrypt = _build_stream(
        "decrypt",
        config.decrypt_stream,
        config.decrypt_key,
        config.stream_decrypter,
        config.decrypt_iv,
    )
    return CipherStreams(encrypt, decrypt)


def ensure_streams(config: CipherConfig) -> CipherStreams:
    """Materialize the streams and store them on config.

    Nothing is stored unless both directions succeed. Calling it again is a
    no-op that returns the stored streams.
    """
    streams = build_streams(config)
    config.encrypt_stream = streams.encrypt
    config.decrypt_stream = streams.decrypt
    return streams


class StreamEncryptDecrypter:
    """Encrypts and decrypts connections with one session's cipher streams."""

    def __init__(self, config: CipherConfig):
        """Initialize the transform.

        Args:
            config: Cipher configuration owned by this session

        """
        self.config = config
        # Background encrypt/decrypt tasks of the transform
        self.tasks = BackgroundTaskGroup()

    def ensure_streams(self) -> CipherStreams:
        """Materialize the cipher streams; see ``ensure_streams``."""
        return ensure_streams(self.config)

    def ciphertext(self, plaintext: Connection) -> GuardedConnection:
        """Return the ciphertext view of a plaintext connection.

        Bytes read from ``plaintext`` are encrypted and become readable from
        the returned connection; ciphertext written to the returned
        connection is decrypted and written to ``plaintext``. Must be called
        from a running event loop.

        Raises:
            ConfigurationError: Key material is incomplete
            CipherConstructionError: Key material is rejected

        """
        streams = self.ensure_streams()

        cipher_rd_in, cipher_wt_out = pipe()
        cipher_rd_out, cipher_wt_in = pipe()
        ciphertext = GuardedConnection(
            PipeConnection(cipher_rd_out, cipher_wt_out), plaintext
        )

        session_id = self._new_session()
        # decrypt ciphertext to plaintext
        self._spawn(
            "decrypt",
            session_id,
            dst=plaintext,
            src=EncryptedStreamReader(cipher_rd_in, streams.decrypt),
            conn=ciphertext,
        )
        # encrypt plaintext to ciphertext
        self._spawn(
            "encrypt",
            session_id,
            dst=EncryptedStreamWriter(cipher_wt_in, streams.encrypt),
            src=plaintext,
            conn=ciphertext,
        )
        return ciphertext

    def plaintext(self, ciphertext: Connection) -> GuardedConnection:
        """Return the plaintext view of a ciphertext connection.

        Plaintext written to the returned connection is encrypted and written
        to ``ciphertext``; bytes read from ``ciphertext`` are decrypted and
        become readable from the returned connection. Must be called from a
        running event loop.

        Raises:
            ConfigurationError: Key material is incomplete
            CipherConstructionError: Key material is rejected

        """
        streams = self.ensure_streams()

        plain_rd_in, plain_wt_out = pipe()
        plain_rd_out, plain_wt_in = pipe()
        plaintext = GuardedConnection(
            PipeConnection(plain_rd_out, plain_wt_out), ciphertext
        )

        session_id = self._new_session()
        # encrypt plaintext to ciphertext
        self._spawn(
            "encrypt",
            session_id,
            dst=EncryptedStreamWriter(ciphertext, streams.encrypt),
            src=plain_rd_in,
            conn=plaintext,
        )
        # decrypt ciphertext to plaintext
        self._spawn(
            "decrypt",
            session_id,
            dst=plain_wt_in,
            src=EncryptedStreamReader(ciphertext, streams.decrypt),
            conn=plaintext,
        )
        return plaintext

    def _new_session(self) -> str:
        if len(self.tasks):
            logger.warning(
                "Cipher streams are already driving another session; "
                "use a fresh StreamEncryptDecrypter per session"
            )
        return uuid.uuid4().hex[:8]

    def _spawn(
        self,
        direction: str,
        session_id: str,
        dst: Any,
        src: Any,
        conn: GuardedConnection,
    ) -> None:
        self.tasks.create(
            _run_direction(direction, session_id, dst, src, conn),
            name=f"groundhog-{direction}-{session_id}",
        )


async def _run_direction(
    direction: str,
    session_id: str,
    dst: Any,
    src: Any,
    conn: GuardedConnection,
) -> None:
    """Copy one direction until end of stream or error, then close the session."""
    set_correlation_id(session_id)
    try:
        copied = await copy_stream(dst, src)
        logger.debug("%s task reached end of stream after %d bytes", direction, copied)
    except (OSError, GroundhogError) as e:
        logger.debug("%s task stopped: %s", direction, e)
    finally:
        await conn.close()
