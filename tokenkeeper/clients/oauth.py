"""
OAuth provider utilities.

These helpers build the consent URL, protect the callback ``state`` value and
exchange authorization codes or refresh tokens for new token pairs.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
import re
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, status

from tokenkeeper.core.config import OAuthSettings
from tokenkeeper.core.errors import ProviderError
from tokenkeeper.core.logging import mask_secret
from tokenkeeper.models.token import TokenGrant

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN_SECONDS = 3600


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        return json.loads(serialized)


class OAuthExchangeClient:
    """Build authorization URLs and exchange grants at the provider's token endpoint.

    Both exchanges return ``None`` instead of raising when the provider rejects
    the request or cannot be reached. Missing client credentials are a
    deployment error and raise ``ConfigurationError`` before any request.
    """

    def __init__(
        self,
        oauth_settings: OAuthSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._oauth = oauth_settings
        self._transport = transport

    @property
    def token_url(self) -> str:
        return str(self._oauth.token_url)

    def build_authorization_url(
        self, scope: Optional[str] = None, state: Optional[str] = None
    ) -> str:
        """Construct the provider consent URL."""
        client_id, _ = self._oauth.require_client_credentials()
        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": str(self._oauth.redirect_uri),
            "scope": (scope or "").strip() or self._oauth.scope,
        }
        if state:
            params["state"] = state
        return f"{self._oauth.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> Optional[TokenGrant]:
        """Exchange a one-time authorization code for an initial token pair."""
        client_id, client_secret = self._oauth.require_client_credentials()
        clean_code = re.sub(r"\s", "", code)
        payload = {
            "grant_type": "authorization_code",
            "client_id": client_id,
            "client_secret": client_secret,
            "code": clean_code,
        }
        logger.info("Exchanging authorization code %s for tokens", mask_secret(clean_code))
        try:
            grant = await self._request_tokens(payload)
        except ProviderError as exc:
            logger.error(
                "Authorization code exchange failed (status=%s): %s",
                exc.status_code,
                exc,
            )
            return None
        logger.info("Authorization code exchange succeeded")
        return grant

    async def exchange_refresh_token(self, refresh_token: str) -> Optional[TokenGrant]:
        """Exchange a refresh token for a new token pair."""
        client_id, client_secret = self._oauth.require_client_credentials()
        payload = {
            "grant_type": "refresh_token",
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
        }
        logger.info("Requesting token refresh with refresh token %s", mask_secret(refresh_token))
        try:
            grant = await self._request_tokens(payload)
        except ProviderError as exc:
            logger.error(
                "Token refresh failed for refresh token %s (status=%s): %s",
                mask_secret(refresh_token),
                exc.status_code,
                exc,
            )
            return None
        logger.info(
            "Token refresh succeeded (access=%s, refresh=%s)",
            mask_secret(grant.access_token),
            mask_secret(grant.refresh_token),
        )
        return grant

    async def _request_tokens(self, payload: Dict[str, str]) -> TokenGrant:
        try:
            async with httpx.AsyncClient(
                timeout=self._oauth.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.token_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Network error calling token endpoint: {exc!r}") from exc

        if not response.is_success:
            raise ProviderError(response.text[:500], status_code=response.status_code)

        try:
            token_payload = response.json()
        except ValueError as exc:
            raise ProviderError(
                "Token endpoint returned a non-JSON body.",
                status_code=response.status_code,
            ) from exc
        if not isinstance(token_payload, dict):
            raise ProviderError(
                "Token endpoint returned an unexpected payload.",
                status_code=response.status_code,
            )

        access_token = token_payload.get("access_token")
        refresh_token = token_payload.get("refresh_token")
        if not isinstance(access_token, str) or not isinstance(refresh_token, str):
            raise ProviderError(
                "Token endpoint returned non-string token values.",
                status_code=response.status_code,
            )
        if not access_token or not refresh_token:
            raise ProviderError(
                "Incomplete token payload; fields present: "
                + ", ".join(sorted(token_payload)),
                status_code=response.status_code,
            )

        raw_expires_in = token_payload.get("expires_in")
        if raw_expires_in is None:
            expires_in = DEFAULT_EXPIRES_IN_SECONDS
        else:
            try:
                if isinstance(raw_expires_in, bool):
                    raise TypeError("boolean expires_in")
                expires_in = int(raw_expires_in)
            except (TypeError, ValueError) as exc:
                raise ProviderError(
                    f"Invalid expires_in value: {raw_expires_in!r}",
                    status_code=response.status_code,
                ) from exc
            if expires_in <= 0:
                raise ProviderError(
                    f"Non-positive expires_in value: {raw_expires_in!r}",
                    status_code=response.status_code,
                )

        return TokenGrant(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
        )


__all__ = ["DEFAULT_EXPIRES_IN_SECONDS", "OAuthExchangeClient", "OAuthStateEncoder"]
