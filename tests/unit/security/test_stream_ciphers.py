"""Tests for stream cipher implementations.

Covers:
- AES in CTR, OFB and CFB mode driven as a stream
- Chunked transforms matching one-shot transforms
- ChaCha20 pre-built streams
- Key and IV errors
"""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from groundhog.security.ciphers import (
    AESStreamCipher,
    ChaCha20Stream,
    StreamCipher,
    new_block_cipher,
    new_cfb_decrypter,
    new_cfb_encrypter,
    new_ctr,
    new_ofb,
)
from tests.conftest import TEST_IV, TEST_KEY

pytestmark = [pytest.mark.unit, pytest.mark.security]


def _ctr_keystream(n: int) -> bytes:
    encryptor = Cipher(algorithms.AES(TEST_KEY), modes.CTR(TEST_IV)).encryptor()
    return encryptor.update(bytes(n))


def test_new_block_cipher_accepts_aes_key_sizes():
    """Test AES-128/192/256 keys are accepted."""
    for size in (16, 24, 32):
        assert new_block_cipher(bytes(size)).key_size == size * 8


def test_new_block_cipher_rejects_bad_key():
    """Test a 5-byte key is rejected by the block cipher."""
    with pytest.raises(ValueError):
        new_block_cipher(b"\x00" * 5)


def test_ctr_stream_is_keystream_xor():
    """Test CTR output is plaintext xor the AES-CTR keystream."""
    stream = new_ctr(new_block_cipher(TEST_KEY), TEST_IV)
    data = bytes([0x01, 0x02, 0x03])

    out = stream.xor_key_stream(data)

    expected = bytes(a ^ b for a, b in zip(data, _ctr_keystream(3)))
    assert out == expected
    assert isinstance(stream, StreamCipher)


@pytest.mark.parametrize(
    ("encrypter", "decrypter"),
    [
        (new_ctr, new_ctr),
        (new_ofb, new_ofb),
        (new_cfb_encrypter, new_cfb_decrypter),
    ],
    ids=["ctr", "ofb", "cfb"],
)
def test_mode_round_trip(encrypter, decrypter):
    """Test decrypting with a fresh stream recovers the plaintext."""
    block = new_block_cipher(TEST_KEY)
    plaintext = b"The quick brown fox jumps over the lazy dog" * 7

    ciphertext = encrypter(block, TEST_IV).xor_key_stream(plaintext)

    assert ciphertext != plaintext
    assert len(ciphertext) == len(plaintext)
    assert decrypter(block, TEST_IV).xor_key_stream(ciphertext) == plaintext


def test_stream_state_advances_across_chunks():
    """Test chunked transforms equal the one-shot transform."""
    block = new_block_cipher(TEST_KEY)
    data = bytes(range(256)) * 3

    one_shot = new_cfb_encrypter(block, TEST_IV).xor_key_stream(data)

    chunked_stream = new_cfb_encrypter(block, TEST_IV)
    chunked = b"".join(
        chunked_stream.xor_key_stream(data[i : i + 7]) for i in range(0, len(data), 7)
    )
    assert chunked == one_shot


def test_empty_input_does_not_advance_stream():
    """Test empty input returns b"" and leaves the keystream in place."""
    stream = new_ctr(new_block_cipher(TEST_KEY), TEST_IV)

    assert stream.xor_key_stream(b"") == b""
    assert stream.xor_key_stream(bytes(3)) == _ctr_keystream(3)


def test_bad_iv_length_rejected():
    """Test an IV shorter than the block size is rejected by the mode."""
    with pytest.raises(ValueError):
        new_ctr(new_block_cipher(TEST_KEY), b"\x00" * 8)


def test_aes_stream_repr():
    """Test AESStreamCipher reports its mode."""
    stream = new_ofb(new_block_cipher(TEST_KEY), TEST_IV)
    assert isinstance(stream, AESStreamCipher)
    assert "ofb" in repr(stream)


def test_chacha20_round_trip():
    """Test ChaCha20 streams with equal key/nonce are inverse."""
    key = b"k" * 32
    nonce = b"n" * 16
    data = b"chacha20 stream data"

    encrypted = ChaCha20Stream(key, nonce).xor_key_stream(data)

    assert encrypted != data
    assert ChaCha20Stream(key, nonce).xor_key_stream(encrypted) == data


def test_chacha20_rejects_bad_sizes():
    """Test ChaCha20 key and nonce size checks."""
    with pytest.raises(ValueError, match="ChaCha20 key must be 32 bytes"):
        ChaCha20Stream(b"short", b"n" * 16)
    with pytest.raises(ValueError, match="ChaCha20 nonce must be 16 bytes"):
        ChaCha20Stream(b"k" * 32, b"n" * 12)
