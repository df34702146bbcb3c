"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from pathlib import Path
from typing import Any, Union

import httpx
import pytest

from tokenkeeper.core.config import (
    AppSettings,
    OAuthSettings,
    SchedulerSettings,
    SecuritySettings,
)
from tokenkeeper.dependencies import ServiceContainer, build_container

TEST_ENCRYPTION_KEY = _bootstrap.TEST_ENCRYPTION_KEY
TOKEN_URL = "https://provider.example.com/oauth/token"


class FakeProvider:
    """Stands in for the provider's token endpoint behind ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []
        self._responses: list[Union[httpx.Response, Exception]] = []

    def reply(self, status_code: int = 200, json_body: Any = None, text: str | None = None) -> None:
        if text is not None:
            self._responses.append(httpx.Response(status_code, text=text))
        else:
            self._responses.append(httpx.Response(status_code, json=json_body))

    def grant(
        self,
        access_token: str = "new-access-token",
        refresh_token: str = "new-refresh-token",
        expires_in: int | None = 3600,
    ) -> None:
        body: dict[str, Any] = {
            "access_token": access_token,
            "refresh_token": refresh_token,
        }
        if expires_in is not None:
            body["expires_in"] = expires_in
        self.reply(200, body)

    def fail_with(self, exc: Exception) -> None:
        self._responses.append(exc)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content or b"{}"))
        self.headers.append(request.headers)
        if not self._responses:
            return httpx.Response(500, json={"error": "no response queued"})
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        database_url=f"sqlite:///{tmp_path / 'tokens.db'}",
        security=SecuritySettings(encryption_key=TEST_ENCRYPTION_KEY),
        oauth=OAuthSettings(
            client_id="client-id",
            client_secret="client-secret",
            token_url=TOKEN_URL,
            authorize_url="https://provider.example.com/oauth/authorize",
            redirect_uri="https://localhost:3000/auth/callback",
        ),
        scheduler=SchedulerSettings(),
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def container(settings: AppSettings, provider: FakeProvider) -> ServiceContainer:
    return build_container(settings, transport=provider.transport)


@pytest.fixture
def encryption_key() -> str:
    return TEST_ENCRYPTION_KEY
