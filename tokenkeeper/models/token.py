"""
Domain models for OAuth token persistence and status reporting.
"""

from datetime import datetime
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field


class TokenRecord(BaseModel):
    """Represents the token row stored in SQLite. Token fields are ciphertext."""

    id: int
    access_token_encrypted: str
    refresh_token_encrypted: str
    expires_at: Optional[datetime] = None
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TokenRecord":
        return cls(
            id=row["id"],
            access_token_encrypted=row["access_token"],
            refresh_token_encrypted=row["refresh_token"],
            expires_at=row["expires_at"],
            updated_at=row["updated_at"],
        )


class TokenGrant(BaseModel):
    """Token pair returned by the provider's token endpoint."""

    access_token: str
    refresh_token: str
    expires_in: int = Field(3600, description="Access token lifetime in seconds.")


class TokenStatus(BaseModel):
    """Derived view of the current record, computed on every request."""

    is_valid: bool
    expires_at: Optional[datetime]
    expires_in_minutes: int
    needs_refresh: bool
    last_updated: datetime


class RevealedTokens(BaseModel):
    """Decrypted token pair for explicit operator display."""

    access_token: str
    refresh_token: str
    expires_at: Optional[datetime] = None


__all__ = ["RevealedTokens", "TokenGrant", "TokenRecord", "TokenStatus"]
