"""Public schema exports."""

from .tokens import (
    AuthorizationUrlResponse,
    OAuthCallbackPayload,
    OperationResult,
    SchedulerState,
)

__all__ = [
    "AuthorizationUrlResponse",
    "OAuthCallbackPayload",
    "OperationResult",
    "SchedulerState",
]
