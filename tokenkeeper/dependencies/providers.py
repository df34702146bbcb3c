"""
FastAPI dependency functions resolving services from the application container.
"""

from fastapi import Request

from tokenkeeper.clients.oauth import OAuthExchangeClient, OAuthStateEncoder
from tokenkeeper.core.config import AppSettings
from tokenkeeper.dependencies.container import ServiceContainer
from tokenkeeper.services.operator_actions import OperatorActions
from tokenkeeper.services.scheduler import RefreshScheduler
from tokenkeeper.services.token_lifecycle import TokenLifecycleService


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_app_settings(request: Request) -> AppSettings:
    return get_container(request).settings


def get_lifecycle_service(request: Request) -> TokenLifecycleService:
    return get_container(request).lifecycle


def get_operator_actions(request: Request) -> OperatorActions:
    return get_container(request).operator_actions


def get_oauth_client(request: Request) -> OAuthExchangeClient:
    return get_container(request).oauth_client


def get_oauth_state_encoder(request: Request) -> OAuthStateEncoder:
    return get_container(request).state_encoder()


def get_scheduler(request: Request) -> RefreshScheduler:
    return get_container(request).scheduler


__all__ = [
    "get_app_settings",
    "get_container",
    "get_lifecycle_service",
    "get_oauth_client",
    "get_oauth_state_encoder",
    "get_operator_actions",
    "get_scheduler",
]
