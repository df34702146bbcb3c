"""Expose dependency helpers for FastAPI routers and entry points."""

from .container import ServiceContainer, build_container
from .providers import (
    get_app_settings,
    get_container,
    get_lifecycle_service,
    get_oauth_client,
    get_oauth_state_encoder,
    get_operator_actions,
    get_scheduler,
)

__all__ = [
    "ServiceContainer",
    "build_container",
    "get_app_settings",
    "get_container",
    "get_lifecycle_service",
    "get_oauth_client",
    "get_oauth_state_encoder",
    "get_operator_actions",
    "get_scheduler",
]
