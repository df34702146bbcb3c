"""Domain models."""

from .token import RevealedTokens, TokenGrant, TokenRecord, TokenStatus

__all__ = ["RevealedTokens", "TokenGrant", "TokenRecord", "TokenStatus"]
