"""Expose constructed client wrappers."""

from .oauth import OAuthExchangeClient, OAuthStateEncoder
from .sqlite_store import SQLiteTokenTable

__all__ = [
    "OAuthExchangeClient",
    "OAuthStateEncoder",
    "SQLiteTokenTable",
]
