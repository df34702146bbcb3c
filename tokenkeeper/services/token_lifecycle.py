"""
Lifecycle management for the single stored OAuth credential set.

The service decides when the current pair is close to expiry, exchanges the
refresh token before the provider invalidates the access token and keeps the
one-record invariant by updating the existing record in place.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from tokenkeeper.clients.oauth import OAuthExchangeClient
from tokenkeeper.core.errors import EncryptionError
from tokenkeeper.core.logging import mask_secret
from tokenkeeper.models.token import RevealedTokens, TokenGrant, TokenRecord, TokenStatus
from tokenkeeper.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

DEFAULT_MANUAL_EXPIRY_MINUTES = 60


class TokenLifecycleService:
    """Keeps the stored token pair usable without operator involvement."""

    REFRESH_BUFFER = timedelta(minutes=10)

    def __init__(self, store: CredentialStore, oauth_client: OAuthExchangeClient) -> None:
        self._store = store
        self._oauth = oauth_client

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    async def get_latest_tokens(self) -> Optional[TokenRecord]:
        return await self._store.latest()

    def needs_refresh(self, record: TokenRecord) -> bool:
        """True when expiry is unknown or falls inside the refresh buffer."""
        if record.expires_at is None:
            return True
        return self._now() >= record.expires_at - self.REFRESH_BUFFER

    def time_until_expiry(self, record: TokenRecord) -> int:
        """Whole minutes until the access token expires, never negative."""
        if record.expires_at is None:
            return 0
        remaining = (record.expires_at - self._now()).total_seconds()
        return max(0, math.floor(remaining / 60))

    def expires_within(self, record: TokenRecord, minutes: int) -> bool:
        return self.time_until_expiry(record) <= minutes

    async def get_valid_access_token(self) -> Optional[str]:
        """Return a usable access token, refreshing first when it is close to expiry."""
        record = await self._store.latest()
        if record is None:
            logger.error("No OAuth tokens found; run the login command to configure them")
            return None

        try:
            if self.needs_refresh(record):
                logger.info("Access token needs refresh, attempting to refresh")
                refreshed = await self.refresh(
                    self._store.decrypt(record.refresh_token_encrypted)
                )
                if refreshed is None:
                    logger.error("Failed to refresh tokens; no valid access token available")
                    return None
                return self._store.decrypt(refreshed.access_token_encrypted)

            return self._store.decrypt(record.access_token_encrypted)
        except EncryptionError:
            logger.exception("Stored token record %s could not be decrypted", record.id)
            return None

    async def refresh(self, refresh_token: str) -> Optional[TokenRecord]:
        """Exchange a refresh token and persist the new pair.

        Storage is only touched after the provider answered successfully, so a
        failed exchange leaves the previous record exactly as it was.
        """
        grant = await self._oauth.exchange_refresh_token(refresh_token)
        if grant is None:
            return None
        return await self._persist_grant(grant, reason="refresh")

    async def refresh_current(self) -> Optional[TokenRecord]:
        """Refresh using the refresh token of the stored record."""
        record = await self._store.latest()
        if record is None:
            logger.warning("Refresh requested but no tokens are stored")
            return None
        try:
            refresh_token = self._store.decrypt(record.refresh_token_encrypted)
        except EncryptionError:
            logger.exception("Stored refresh token for record %s could not be decrypted", record.id)
            return None
        return await self.refresh(refresh_token)

    async def status(self) -> Optional[TokenStatus]:
        """Compute a fresh status view of the current record."""
        record = await self._store.latest()
        if record is None:
            return None

        expires_at = record.expires_at
        is_valid = expires_at is not None and self._now() < expires_at
        return TokenStatus(
            is_valid=is_valid,
            expires_at=expires_at,
            expires_in_minutes=self.time_until_expiry(record),
            needs_refresh=self.needs_refresh(record),
            last_updated=record.updated_at,
        )

    async def validate_tokens(self) -> bool:
        """True when a record exists and yields a usable access token."""
        record = await self._store.latest()
        if record is None or not record.refresh_token_encrypted:
            return False
        return bool(await self.get_valid_access_token())

    async def login_with_authorization_code(self, code: str) -> Optional[TokenRecord]:
        """Exchange an authorization code and store the initial pair."""
        grant = await self._oauth.exchange_authorization_code(code)
        if grant is None:
            return None
        record = await self._persist_grant(grant, reason="login")
        if record is not None:
            logger.info("Login completed; token record %s is active", record.id)
        return record

    async def set_tokens_manually(
        self,
        access_token: str,
        refresh_token: str,
        expires_in_minutes: Optional[int] = DEFAULT_MANUAL_EXPIRY_MINUTES,
    ) -> TokenRecord:
        """Store an out-of-band token pair without contacting the provider."""
        if not access_token or not access_token.strip():
            raise ValueError("Both access token and refresh token are required")
        if not refresh_token or not refresh_token.strip():
            raise ValueError("Both access token and refresh token are required")

        minutes = (
            DEFAULT_MANUAL_EXPIRY_MINUTES if expires_in_minutes is None else expires_in_minutes
        )
        if minutes <= 0:
            raise ValueError("Expiry time must be a positive number of minutes")
        logger.info(
            "Storing manually provided tokens (access=%s, refresh=%s, expires in %s minutes)",
            mask_secret(access_token),
            mask_secret(refresh_token),
            minutes,
        )
        return await self._upsert(access_token.strip(), refresh_token.strip(), minutes * 60)

    async def reveal_tokens(self) -> Optional[RevealedTokens]:
        """Decrypt the current pair. Callers must confirm with the operator first."""
        record = await self._store.latest()
        if record is None:
            return None
        return self._store.reveal(record)

    async def clear(self) -> None:
        await self._store.clear()

    async def _persist_grant(self, grant: TokenGrant, *, reason: str) -> Optional[TokenRecord]:
        try:
            return await self._upsert(
                grant.access_token, grant.refresh_token, grant.expires_in
            )
        except Exception:
            # The provider may already have invalidated the previous refresh token.
            logger.exception(
                "Failed to persist tokens after %s; recover with refresh token %s",
                reason,
                mask_secret(grant.refresh_token),
            )
            return None

    async def _upsert(
        self, access_token: str, refresh_token: str, expires_in_seconds: int
    ) -> TokenRecord:
        current = await self._store.latest()
        if current is None:
            return await self._store.insert(access_token, refresh_token, expires_in_seconds)

        await self._store.update(current.id, access_token, refresh_token, expires_in_seconds)
        updated = await self._store.latest()
        if updated is None:
            raise LookupError("Token record disappeared while it was being updated.")
        return updated


__all__ = ["DEFAULT_MANUAL_EXPIRY_MINUTES", "TokenLifecycleService"]
