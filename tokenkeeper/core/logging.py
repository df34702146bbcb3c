"""
Logging utilities for the API, the headless worker and the operator CLI.

Provides a consistent logging format and a helper for rendering secrets.
"""

import logging
import sys

_SECRET_PREFIX_LENGTH = 8


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def mask_secret(value: str | None) -> str:
    """Render only a short prefix of a credential for log output."""
    if not value:
        return "<empty>"
    return f"{value[:_SECRET_PREFIX_LENGTH]}..."


__all__ = ["configure_logging", "mask_secret"]
