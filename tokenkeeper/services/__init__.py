"""Service layer exports."""

from .credential_store import CredentialStore
from .operator_actions import OperatorActions
from .scheduler import RefreshScheduler, TokenPresenceTracker
from .token_cipher import TokenCipherService
from .token_lifecycle import TokenLifecycleService

__all__ = [
    "CredentialStore",
    "OperatorActions",
    "RefreshScheduler",
    "TokenCipherService",
    "TokenLifecycleService",
    "TokenPresenceTracker",
]
