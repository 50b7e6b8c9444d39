"""
Decryption of secrets stored in a Next Terminal database.

Public API:
    vault.decrypt(value)        → plaintext, raises SecretDecodeError
    vault.try_decrypt(value)    → plaintext or None
    vault.must_decrypt(value)   → plaintext, "" when undecodable
"""

from __future__ import annotations

from ntexport.vault.crypto import decrypt, must_decrypt, try_decrypt

__all__ = ["decrypt", "try_decrypt", "must_decrypt"]
