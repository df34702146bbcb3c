"""
Application configuration models and helpers.

Centralizes settings management so the API, the headless worker and the
operator CLI share one configuration surface that is validated once at startup
and then threaded explicitly into each component.
"""

from functools import lru_cache
from typing import Optional

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tokenkeeper.core.errors import ConfigurationError

_SQLITE_SCHEME = "sqlite:///"


def _settings_config(prefix: str = "") -> SettingsConfigDict:
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _settings_config("TOKEN_")

    encryption_key: Optional[str] = Field(
        None,
        description="Hex-encoded 32-byte key used to encrypt stored tokens.",
    )


class OAuthSettings(BaseSettings):
    """OAuth client credentials and provider endpoints."""

    model_config = _settings_config("OAUTH_")

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: AnyHttpUrl = Field("https://localhost:3000/auth/callback")
    token_url: AnyHttpUrl = Field("https://cloud.lightspeedapp.com/auth/oauth/token")
    authorize_url: AnyHttpUrl = Field(
        "https://cloud.lightspeedapp.com/auth/oauth/authorize"
    )
    scope: str = "employee:all"
    request_timeout_seconds: float = Field(10.0, gt=0)
    state_ttl_seconds: int = Field(900, gt=0)

    @field_validator("client_id", "client_secret", mode="before")
    @classmethod
    def _blank_as_missing(cls, value: Optional[str]) -> Optional[str]:
        """Treat empty environment values the same as unset ones."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def require_client_credentials(self) -> tuple[str, str]:
        """Return (client_id, client_secret) or fail with a configuration error."""
        if not self.client_id or not self.client_secret:
            raise ConfigurationError(
                "OAUTH_CLIENT_ID and OAUTH_CLIENT_SECRET environment variables are required"
            )
        return self.client_id, self.client_secret


class SchedulerSettings(BaseSettings):
    """Periods and thresholds for the unattended refresh scheduler."""

    model_config = _settings_config("SCHEDULER_")

    refresh_interval_seconds: float = Field(300.0, gt=0)
    health_check_interval_seconds: float = Field(3600.0, gt=0)
    expiry_warning_minutes: int = Field(30, ge=0)


class AppSettings(BaseSettings):
    """Root settings object shared by every entry point."""

    model_config = _settings_config()

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    database_url: str = Field(
        "sqlite:///./data/tokenkeeper.db", validation_alias="DATABASE_URL"
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)

    @property
    def database_path(self) -> str:
        """Filesystem path of the SQLite database named by ``DATABASE_URL``."""
        url = self.database_url.strip()
        if url.startswith(_SQLITE_SCHEME):
            path = url[len(_SQLITE_SCHEME):]
            if path:
                return path
        elif "://" not in url and url:
            return url
        raise ConfigurationError(
            f"DATABASE_URL must be a sqlite:///<path> URL, got {url.split('://')[0]!r} scheme"
        )

    def validate_runtime(self) -> None:
        """Fail fast with every missing or malformed setting listed at once."""
        from tokenkeeper.services.token_cipher import decode_encryption_key

        problems: list[str] = []
        try:
            decode_encryption_key(self.security.encryption_key)
        except ConfigurationError as exc:
            problems.append(str(exc))
        if not self.oauth.client_id:
            problems.append("OAUTH_CLIENT_ID environment variable is required")
        if not self.oauth.client_secret:
            problems.append("OAUTH_CLIENT_SECRET environment variable is required")
        try:
            self.database_path
        except ConfigurationError as exc:
            problems.append(str(exc))

        if problems:
            raise ConfigurationError("; ".join(problems))


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SchedulerSettings",
    "SecuritySettings",
    "get_settings",
]
