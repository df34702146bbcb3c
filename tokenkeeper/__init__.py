"""Keeps a single OAuth2 credential set encrypted at rest and refreshed before expiry."""

__version__ = "0.1.0"
