"""
AES-256-CBC decryption for secrets stored by Next Terminal.

Stored values are base64(AES-CBC(plaintext + PKCS#7 padding)). The key is the
hex MD5 of a passphrase compiled into Next Terminal, and the first 16 bytes of
that same key are used as the IV. This is a legacy compatibility key: it exists
only to read databases written by Next Terminal and must not be reused for
anything new. Decrypt-only.
"""

from __future__ import annotations

import base64
import binascii
import functools
import hashlib
import logging

from ntexport.errors import SecretDecodeError

logger = logging.getLogger(__name__)

# Stored in place of a secret that was never set.
EMPTY_SENTINEL = "-"

BLOCK_SIZE = 16

_LEGACY_PASSPHRASE = b"next-terminal"


@functools.cache
def legacy_key() -> bytes:
    """Legacy compatibility key: 32 ASCII hex bytes, i.e. an AES-256 key."""
    digest = hashlib.md5(_LEGACY_PASSPHRASE, usedforsecurity=False).hexdigest()
    return digest.encode("ascii")


def decrypt(value: str) -> str:
    """Decrypt a stored secret.

    Empty values and the ``"-"`` sentinel decrypt to ``""``. Anything else must
    be valid base64 ciphertext with valid padding whose plaintext is UTF-8,
    otherwise SecretDecodeError is raised.
    """
    try:
        return _decrypt_bytes(value).decode("utf-8")
    except UnicodeDecodeError as e:
        raise SecretDecodeError("Decrypted secret is not valid UTF-8") from e


def try_decrypt(value: str) -> str | None:
    """Decrypt a stored secret. Returns None if it cannot be decoded.

    Plaintext that is not UTF-8 is kept, with invalid bytes replaced by U+FFFD.
    """
    try:
        return _decrypt_bytes(value).decode("utf-8", errors="replace")
    except SecretDecodeError:
        return None


def must_decrypt(value: str, *, context: str = "") -> str:
    """Decrypt a stored secret, degrading to ``""`` when it cannot be decoded.

    Used for bulk export, where one unreadable secret must not abort the run.
    ``context`` identifies the field in the warning; the value is never logged.
    """
    plaintext = try_decrypt(value)
    if plaintext is None:
        logger.warning("Undecodable secret %s, exporting empty value", context or "(unnamed)")
        return ""
    return plaintext


def _aes_cbc_decrypt(data: bytes, key: bytes) -> bytes:
    from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

    if not data or len(data) % BLOCK_SIZE:
        raise SecretDecodeError(
            f"Ciphertext length {len(data)} is not a positive multiple of {BLOCK_SIZE}"
        )
    decryptor = Cipher(algorithms.AES(key), modes.CBC(key[:BLOCK_SIZE])).decryptor()
    return decryptor.update(data) + decryptor.finalize()


def _unpad(data: bytes) -> bytes:
    """Strip trailing-byte padding. Only the final byte is checked."""
    pad = data[-1]
    if not 0 < pad <= BLOCK_SIZE or pad > len(data):
        raise SecretDecodeError(f"Invalid padding length {pad}")
    return data[:-pad]


def _decrypt_bytes(value: str) -> bytes:
    if not value or value == EMPTY_SENTINEL:
        return b""
    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SecretDecodeError(f"Secret is not valid base64: {e}") from e
    return _unpad(_aes_cbc_decrypt(data, legacy_key()))
