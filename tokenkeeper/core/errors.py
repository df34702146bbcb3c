"""
Exception hierarchy shared by the credential lifecycle components.
"""

from __future__ import annotations


class TokenKeeperError(Exception):
    """Base class for all tokenkeeper errors."""


class ConfigurationError(TokenKeeperError):
    """Raised when required deployment configuration is missing or invalid."""


class EncryptionError(TokenKeeperError):
    """Raised when a token cannot be encrypted or decrypted."""


class InvalidEncryptionKeyError(ConfigurationError, EncryptionError):
    """Raised when the encryption key is absent or has the wrong length."""


class ProviderError(TokenKeeperError):
    """Raised when the OAuth provider rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class NotConfiguredError(TokenKeeperError):
    """Raised when no token record has been stored yet."""


__all__ = [
    "ConfigurationError",
    "EncryptionError",
    "InvalidEncryptionKeyError",
    "NotConfiguredError",
    "ProviderError",
    "TokenKeeperError",
]
