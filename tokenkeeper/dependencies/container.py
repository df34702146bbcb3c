"""
Explicit wiring of the clients and services that make up one process.

Entry points build exactly one container at startup and pass it around; there
is no module-level client or scheduler instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from tokenkeeper.clients.oauth import OAuthExchangeClient, OAuthStateEncoder
from tokenkeeper.clients.sqlite_store import SQLiteTokenTable
from tokenkeeper.core.config import AppSettings
from tokenkeeper.services.credential_store import CredentialStore
from tokenkeeper.services.operator_actions import OperatorActions
from tokenkeeper.services.scheduler import RefreshScheduler
from tokenkeeper.services.token_cipher import TokenCipherService
from tokenkeeper.services.token_lifecycle import TokenLifecycleService


@dataclass
class ServiceContainer:
    settings: AppSettings
    table: SQLiteTokenTable
    cipher: TokenCipherService
    store: CredentialStore
    oauth_client: OAuthExchangeClient
    lifecycle: TokenLifecycleService
    operator_actions: OperatorActions
    scheduler: RefreshScheduler

    def state_encoder(self) -> OAuthStateEncoder:
        """State signer keyed by the OAuth client secret."""
        _, client_secret = self.settings.oauth.require_client_credentials()
        return OAuthStateEncoder(secret_key=client_secret)


def build_container(
    settings: AppSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ServiceContainer:
    """Construct every component from validated settings.

    Raises ``ConfigurationError`` when the encryption key or database URL is
    unusable.
    """
    table = SQLiteTokenTable(settings.database_path)
    cipher = TokenCipherService(key=settings.security.encryption_key)
    store = CredentialStore(table, cipher)
    oauth_client = OAuthExchangeClient(settings.oauth, transport=transport)
    lifecycle = TokenLifecycleService(store, oauth_client)
    return ServiceContainer(
        settings=settings,
        table=table,
        cipher=cipher,
        store=store,
        oauth_client=oauth_client,
        lifecycle=lifecycle,
        operator_actions=OperatorActions(lifecycle),
        scheduler=RefreshScheduler(lifecycle, settings.scheduler),
    )


__all__ = ["ServiceContainer", "build_container"]
