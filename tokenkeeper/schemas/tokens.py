"""Schemas returned by the operator surfaces (CLI and HTTP API)."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from tokenkeeper.models.token import RevealedTokens, TokenStatus


class OperationResult(BaseModel):
    """Structured outcome of an operator action; failures never raise."""

    success: bool
    message: str
    status: Optional[TokenStatus] = None
    formatted: Optional[str] = None
    tokens: Optional[RevealedTokens] = Field(
        None, description="Decrypted tokens; only populated by the reveal action."
    )


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by the provider.")
    state: str = Field(..., description="Opaque state token issued when starting OAuth.")


class AuthorizationUrlResponse(BaseModel):
    authorization_url: str
    state: str


class SchedulerState(BaseModel):
    refresh_scheduler_running: bool
    health_check_scheduler_running: bool


__all__ = [
    "AuthorizationUrlResponse",
    "OAuthCallbackPayload",
    "OperationResult",
    "SchedulerState",
]
