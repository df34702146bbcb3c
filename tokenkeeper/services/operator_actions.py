"""
Operator-facing wrappers around the lifecycle service.

Each action maps onto one lifecycle operation and reports a structured
success/failure result with a human-readable message instead of raising.
Configuration errors still propagate: they need an operator fix, not a retry.
"""

from __future__ import annotations

import logging
from typing import Optional

from tokenkeeper.core.errors import ConfigurationError
from tokenkeeper.models.token import TokenStatus
from tokenkeeper.schemas.tokens import OperationResult
from tokenkeeper.services.token_lifecycle import TokenLifecycleService

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 10


def format_status(status: TokenStatus) -> str:
    """Render a status block with an operator tip when action is advisable."""
    lines = [
        "Token Status:",
        f"   Valid: {'yes' if status.is_valid else 'NO'}",
        f"   Expires: {status.expires_at.isoformat() if status.expires_at else 'Unknown'}",
        f"   Expires in: {status.expires_in_minutes} minutes",
        f"   Needs refresh: {'yes' if status.needs_refresh else 'no'}",
        f"   Last updated: {status.last_updated.isoformat()}",
    ]
    if status.needs_refresh and status.is_valid:
        lines.extend(["", "Tip: run the refresh command to refresh tokens now."])
    elif not status.is_valid:
        lines.extend(
            ["", "Tokens are expired. Try refreshing, or login again if refresh fails."]
        )
    return "\n".join(lines)


def _failure(prefix: str, exc: Exception) -> OperationResult:
    return OperationResult(success=False, message=f"{prefix}: {exc}")


class OperatorActions:
    """Login, manual entry, refresh, status, reveal and clear for operators."""

    def __init__(self, lifecycle: TokenLifecycleService) -> None:
        self._lifecycle = lifecycle

    async def login(self, code: str) -> OperationResult:
        if not code or not code.strip():
            return OperationResult(success=False, message="Authorization code is required")
        try:
            record = await self._lifecycle.login_with_authorization_code(code)
            if record is None:
                return OperationResult(
                    success=False,
                    message="Failed to complete login - invalid authorization code or network error",
                )
            return OperationResult(
                success=True,
                message="Login successful! Tokens stored securely.",
                status=await self._lifecycle.status(),
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Login failed")
            return _failure("Login failed", exc)

    async def set_tokens(
        self,
        access_token: str,
        refresh_token: str,
        expires_in_minutes: Optional[int] = None,
    ) -> OperationResult:
        access_token = (access_token or "").strip()
        refresh_token = (refresh_token or "").strip()
        if not access_token or not refresh_token:
            return OperationResult(
                success=False, message="Both access token and refresh token are required"
            )
        if len(access_token) < MIN_TOKEN_LENGTH or len(refresh_token) < MIN_TOKEN_LENGTH:
            return OperationResult(
                success=False,
                message="Tokens appear too short - please verify they are complete",
            )
        if any(char.isspace() for char in access_token + refresh_token):
            return OperationResult(
                success=False,
                message="Tokens should not contain spaces - please verify they are correct",
            )
        if expires_in_minutes is not None and expires_in_minutes <= 0:
            return OperationResult(
                success=False, message="Expiry time must be a positive number of minutes"
            )
        try:
            if expires_in_minutes is None:
                await self._lifecycle.set_tokens_manually(access_token, refresh_token)
            else:
                await self._lifecycle.set_tokens_manually(
                    access_token, refresh_token, expires_in_minutes
                )
            return OperationResult(
                success=True,
                message="Tokens set manually and stored securely",
                status=await self._lifecycle.status(),
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Manual token entry failed")
            return _failure("Failed to set tokens", exc)

    async def refresh(self) -> OperationResult:
        try:
            if await self._lifecycle.get_latest_tokens() is None:
                return OperationResult(
                    success=False,
                    message="No tokens found. Please login first using the login command",
                )
            if await self._lifecycle.refresh_current() is None:
                return OperationResult(
                    success=False,
                    message="Failed to refresh tokens - they may be expired or invalid",
                )
            return OperationResult(
                success=True,
                message="Tokens refreshed successfully!",
                status=await self._lifecycle.status(),
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Forced refresh failed")
            return _failure("Refresh failed", exc)

    async def status(self) -> OperationResult:
        try:
            status = await self._lifecycle.status()
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Status lookup failed")
            return _failure("Failed to get token status", exc)
        if status is None:
            return OperationResult(
                success=False,
                message="No tokens found",
                formatted="No tokens found\nUse the login command to get started",
            )
        return OperationResult(
            success=True,
            message="Token status retrieved",
            status=status,
            formatted=format_status(status),
        )

    async def show_tokens(self) -> OperationResult:
        try:
            tokens = await self._lifecycle.reveal_tokens()
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Token reveal failed")
            return _failure("Failed to retrieve tokens", exc)
        if tokens is None:
            return OperationResult(success=False, message="No tokens found")
        return OperationResult(
            success=True, message="Tokens retrieved successfully", tokens=tokens
        )

    async def clear(self) -> OperationResult:
        try:
            await self._lifecycle.clear()
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Clearing tokens failed")
            return _failure("Failed to clear tokens", exc)
        return OperationResult(success=True, message="All tokens cleared successfully")


__all__ = ["MIN_TOKEN_LENGTH", "OperatorActions", "format_status"]
