"""
Encrypted persistence for the current OAuth token pair.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from tokenkeeper.clients.sqlite_store import SQLiteTokenTable
from tokenkeeper.core.logging import mask_secret
from tokenkeeper.models.token import RevealedTokens, TokenRecord
from tokenkeeper.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


class CredentialStore:
    """Owns every read and write of the persisted token record.

    Tokens are encrypted before they reach the table and nothing is cached:
    each read goes back to SQLite so concurrent processes see the same record.
    """

    def __init__(self, table: SQLiteTokenTable, cipher: TokenCipherService) -> None:
        self._table = table
        self._cipher = cipher

    def encrypt(self, plaintext: str) -> str:
        return self._cipher.encrypt(plaintext)

    def decrypt(self, ciphertext: str) -> str:
        return self._cipher.decrypt(ciphertext)

    async def latest(self) -> Optional[TokenRecord]:
        """Return the current record, or None when nothing is stored."""
        row = await asyncio.to_thread(self._table.find_latest)
        if row is None:
            return None
        return TokenRecord.from_row(row)

    async def insert(
        self, access_token: str, refresh_token: str, expires_in_seconds: int
    ) -> TokenRecord:
        """Encrypt and store a new token pair."""
        logger.info(
            "Storing new token pair (access=%s, refresh=%s, expires_in=%ss)",
            mask_secret(access_token),
            mask_secret(refresh_token),
            expires_in_seconds,
        )
        now = _utcnow()
        expires_at = now + timedelta(seconds=expires_in_seconds)
        row = await asyncio.to_thread(
            self._table.insert_one,
            access_token=self._cipher.encrypt(access_token),
            refresh_token=self._cipher.encrypt(refresh_token),
            expires_at=_isoformat(expires_at),
            updated_at=_isoformat(now),
        )
        record = TokenRecord.from_row(row)
        logger.info(
            "Inserted token record %s expiring at %s", record.id, _isoformat(expires_at)
        )
        return record

    async def update(
        self,
        record_id: int,
        access_token: str,
        refresh_token: str,
        expires_in_seconds: int,
    ) -> None:
        """Overwrite the token fields of an existing record in place."""
        logger.info(
            "Updating token record %s (access=%s, refresh=%s, expires_in=%ss)",
            record_id,
            mask_secret(access_token),
            mask_secret(refresh_token),
            expires_in_seconds,
        )
        now = _utcnow()
        expires_at = now + timedelta(seconds=expires_in_seconds)
        updated = await asyncio.to_thread(
            self._table.update_by_id,
            record_id,
            access_token=self._cipher.encrypt(access_token),
            refresh_token=self._cipher.encrypt(refresh_token),
            expires_at=_isoformat(expires_at),
            updated_at=_isoformat(now),
        )
        if not updated:
            raise LookupError(f"Token record {record_id} no longer exists.")
        logger.info(
            "Updated token record %s expiring at %s", record_id, _isoformat(expires_at)
        )

    async def clear(self) -> None:
        """Delete every stored record."""
        deleted = await asyncio.to_thread(self._table.delete_all)
        logger.info("Cleared %s token record(s)", deleted)

    def reveal(self, record: TokenRecord) -> RevealedTokens:
        """Decrypt both tokens of a record for explicit operator display."""
        return RevealedTokens(
            access_token=self._cipher.decrypt(record.access_token_encrypted),
            refresh_token=self._cipher.decrypt(record.refresh_token_encrypted),
            expires_at=record.expires_at,
        )


__all__ = ["CredentialStore"]
