"""
FastAPI routes for monitoring and bootstrapping the stored credentials.

No route returns decrypted tokens; revealing them is an operator CLI action
that requires explicit confirmation.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from tokenkeeper.clients.oauth import OAuthExchangeClient, OAuthStateEncoder
from tokenkeeper.core.config import AppSettings
from tokenkeeper.core.errors import NotConfiguredError
from tokenkeeper.dependencies import (
    get_app_settings,
    get_lifecycle_service,
    get_oauth_client,
    get_oauth_state_encoder,
    get_operator_actions,
    get_scheduler,
)
from tokenkeeper.models.token import TokenStatus
from tokenkeeper.schemas.tokens import (
    AuthorizationUrlResponse,
    OAuthCallbackPayload,
    OperationResult,
)
from tokenkeeper.services.operator_actions import OperatorActions
from tokenkeeper.services.scheduler import RefreshScheduler
from tokenkeeper.services.token_lifecycle import TokenLifecycleService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(
    scheduler: Annotated[RefreshScheduler, Depends(get_scheduler)],
) -> dict:
    """Liveness endpoint that also reports whether the timers are running."""
    return {
        "status": "ok",
        "scheduler": scheduler.scheduler_status().model_dump(),
        "presence": scheduler.presence.value,
    }


@router.get("/tokens/status", response_model=TokenStatus)
async def token_status(
    lifecycle: Annotated[TokenLifecycleService, Depends(get_lifecycle_service)],
) -> TokenStatus:
    status = await lifecycle.status()
    if status is None:
        raise NotConfiguredError("No tokens configured. Run the login command to get started.")
    return status


@router.post("/tokens/refresh", response_model=OperationResult)
async def force_refresh(
    lifecycle: Annotated[TokenLifecycleService, Depends(get_lifecycle_service)],
    actions: Annotated[OperatorActions, Depends(get_operator_actions)],
) -> OperationResult:
    if await lifecycle.get_latest_tokens() is None:
        raise NotConfiguredError("No tokens found. Please login first.")
    result = await actions.refresh()
    if not result.success:
        raise HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=result.message)
    return result


@router.get("/auth/authorize", status_code=HTTPStatus.OK)
async def start_oauth_flow(
    request: Request,
    oauth_client: Annotated[OAuthExchangeClient, Depends(get_oauth_client)],
    state_encoder: Annotated[OAuthStateEncoder, Depends(get_oauth_state_encoder)],
    scope: Optional[str] = Query(default=None, description="OAuth scope override."),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the consent screen.",
    ),
) -> Any:
    """Kick off the OAuth flow by generating a state token and authorization URL."""
    state = state_encoder.encode(
        {
            "nonce": uuid.uuid4().hex,
            "issued_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    authorization_url = oauth_client.build_authorization_url(scope=scope, state=state)

    wants_html = "text/html" in request.headers.get("accept", "").lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)
    return AuthorizationUrlResponse(authorization_url=authorization_url, state=state)


@router.post("/auth/callback", response_model=OperationResult)
async def handle_oauth_callback(
    payload: OAuthCallbackPayload,
    state_encoder: Annotated[OAuthStateEncoder, Depends(get_oauth_state_encoder)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    actions: Annotated[OperatorActions, Depends(get_operator_actions)],
) -> OperationResult:
    """Validate the state token, exchange the code and store the tokens."""
    state_data = state_encoder.decode(payload.state)

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )
    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc
    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    if datetime.now(timezone.utc) - issued_at > timedelta(
        seconds=settings.oauth.state_ttl_seconds
    ):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    result = await actions.login(payload.code)
    if not result.success:
        logger.warning("OAuth callback login failed: %s", result.message)
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=result.message)
    return result


@router.get("/auth/callback", response_model=OperationResult)
async def handle_oauth_callback_get(
    state_encoder: Annotated[OAuthStateEncoder, Depends(get_oauth_state_encoder)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    actions: Annotated[OperatorActions, Depends(get_operator_actions)],
    state: str = Query(..., description="OAuth state token."),
    code: str = Query(..., description="Authorization code returned by the provider."),
) -> OperationResult:
    return await handle_oauth_callback(
        payload=OAuthCallbackPayload(state=state, code=code),
        state_encoder=state_encoder,
        settings=settings,
        actions=actions,
    )


__all__ = ["router"]
