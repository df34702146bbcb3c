"""Symmetric encryption utilities for protecting stored tokens."""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tokenkeeper.core.errors import EncryptionError, InvalidEncryptionKeyError

KEY_SIZE = 32
NONCE_SIZE = 12
_SEPARATOR = ":"


def decode_encryption_key(key: str | None) -> bytes:
    """Decode the hex-encoded key and verify it is exactly 32 bytes."""
    if not key:
        raise InvalidEncryptionKeyError(
            "TOKEN_ENCRYPTION_KEY environment variable is required"
        )
    try:
        key_bytes = bytes.fromhex(key.strip())
    except ValueError as exc:
        raise InvalidEncryptionKeyError(
            "TOKEN_ENCRYPTION_KEY must be a hex-encoded string"
        ) from exc
    if len(key_bytes) != KEY_SIZE:
        raise InvalidEncryptionKeyError(
            f"Invalid encryption key length: expected {KEY_SIZE} bytes, got {len(key_bytes)}"
        )
    return key_bytes


class TokenCipherService:
    """Encrypt and decrypt sensitive strings with AES-256-GCM.

    Ciphertexts are self-contained: ``hex(nonce):hex(ciphertext + tag)``. A fresh
    random nonce is drawn for every call, so encrypting the same plaintext twice
    never yields the same output.
    """

    def __init__(self, *, key: str | None) -> None:
        self._aesgcm = AESGCM(decode_encryption_key(key))

    @staticmethod
    def generate_key() -> str:
        """Return a new random key in the hex form expected by the settings."""
        return os.urandom(KEY_SIZE).hex()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return the ciphertext."""
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return f"{nonce.hex()}{_SEPARATOR}{sealed.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a ciphertext string and return the plaintext."""
        nonce_hex, separator, payload_hex = ciphertext.partition(_SEPARATOR)
        if not separator:
            raise EncryptionError("Malformed ciphertext: missing nonce separator.")
        try:
            nonce = bytes.fromhex(nonce_hex)
            payload = bytes.fromhex(payload_hex)
        except ValueError as exc:
            raise EncryptionError("Malformed ciphertext: invalid hex encoding.") from exc
        if len(nonce) != NONCE_SIZE:
            raise EncryptionError(
                f"Malformed ciphertext: expected {NONCE_SIZE}-byte nonce, got {len(nonce)}."
            )
        try:
            plaintext = self._aesgcm.decrypt(nonce, payload, None)
        except InvalidTag as exc:
            raise EncryptionError(
                "Failed to decrypt token; ciphertext is corrupted or the key changed."
            ) from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:  # pragma: no cover - authenticated payload
            raise EncryptionError("Decrypted token is not valid UTF-8.") from exc


__all__ = ["KEY_SIZE", "NONCE_SIZE", "TokenCipherService", "decode_encryption_key"]
