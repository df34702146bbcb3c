from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tokenkeeper.dependencies import ServiceContainer
from tokenkeeper.models.token import TokenStatus
from tokenkeeper.services.operator_actions import format_status


def _status(**overrides) -> TokenStatus:
    now = datetime.now(timezone.utc)
    values = {
        "is_valid": True,
        "expires_at": now + timedelta(minutes=45),
        "expires_in_minutes": 45,
        "needs_refresh": False,
        "last_updated": now,
    }
    values.update(overrides)
    return TokenStatus(**values)


def test_format_status_for_healthy_tokens() -> None:
    text = format_status(_status())

    assert text.startswith("Token Status:")
    assert "Expires in: 45 minutes" in text
    assert "Tip:" not in text


def test_format_status_suggests_refresh() -> None:
    text = format_status(_status(needs_refresh=True, expires_in_minutes=5))

    assert "Tip: run the refresh command" in text


def test_format_status_for_expired_tokens() -> None:
    text = format_status(
        _status(is_valid=False, needs_refresh=True, expires_at=None, expires_in_minutes=0)
    )

    assert "Expires: Unknown" in text
    assert "login again if refresh fails" in text


@pytest.mark.asyncio
async def test_login_requires_code(container: ServiceContainer, provider) -> None:
    result = await container.operator_actions.login("   ")

    assert result.success is False
    assert result.message == "Authorization code is required"
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_login_success_reports_status(container: ServiceContainer, provider) -> None:
    provider.grant()

    result = await container.operator_actions.login("auth-code")

    assert result.success is True
    assert result.message == "Login successful! Tokens stored securely."
    assert result.status is not None and result.status.is_valid is True


@pytest.mark.asyncio
async def test_login_rejected_by_provider(container: ServiceContainer, provider) -> None:
    provider.reply(400, {"error": "invalid_grant"})

    result = await container.operator_actions.login("expired-code")

    assert result.success is False
    assert "invalid authorization code" in result.message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "access,refresh,minutes,message",
    [
        ("", "refresh-token-value", None, "Both access token and refresh token are required"),
        ("short", "refresh-token-value", None, "Tokens appear too short"),
        ("access token value", "refresh-token-value", None, "Tokens should not contain spaces"),
        ("access-token-value", "refresh-token-value", 0, "Expiry time must be a positive"),
    ],
)
async def test_set_tokens_validation(
    container: ServiceContainer, access, refresh, minutes, message
) -> None:
    result = await container.operator_actions.set_tokens(access, refresh, minutes)

    assert result.success is False
    assert result.message.startswith(message)
    assert container.table.count() == 0


@pytest.mark.asyncio
async def test_set_tokens_stores_pair(container: ServiceContainer) -> None:
    result = await container.operator_actions.set_tokens(
        " access-token-value ", "refresh-token-value", 90
    )

    assert result.success is True
    assert result.message == "Tokens set manually and stored securely"
    assert 88 <= result.status.expires_in_minutes <= 90
    revealed = await container.lifecycle.reveal_tokens()
    assert revealed.access_token == "access-token-value"


@pytest.mark.asyncio
async def test_refresh_without_tokens(container: ServiceContainer, provider) -> None:
    result = await container.operator_actions.refresh()

    assert result.success is False
    assert result.message.startswith("No tokens found")
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_refresh_success_and_failure(container: ServiceContainer, provider) -> None:
    await container.operator_actions.set_tokens("access-token-value", "refresh-token-value")
    provider.grant()
    provider.reply(400, {"error": "invalid_grant"})

    first = await container.operator_actions.refresh()
    second = await container.operator_actions.refresh()

    assert first.success is True
    assert first.message == "Tokens refreshed successfully!"
    assert second.success is False
    assert second.message == "Failed to refresh tokens - they may be expired or invalid"


@pytest.mark.asyncio
async def test_status_without_tokens(container: ServiceContainer) -> None:
    result = await container.operator_actions.status()

    assert result.success is False
    assert result.message == "No tokens found"
    assert "login command" in result.formatted


@pytest.mark.asyncio
async def test_status_with_tokens(container: ServiceContainer) -> None:
    await container.operator_actions.set_tokens("access-token-value", "refresh-token-value")

    result = await container.operator_actions.status()

    assert result.success is True
    assert result.formatted.startswith("Token Status:")


@pytest.mark.asyncio
async def test_show_tokens(container: ServiceContainer) -> None:
    empty = await container.operator_actions.show_tokens()
    await container.operator_actions.set_tokens("access-token-value", "refresh-token-value")
    shown = await container.operator_actions.show_tokens()

    assert empty.success is False
    assert shown.success is True
    assert shown.tokens.access_token == "access-token-value"
    assert shown.tokens.refresh_token == "refresh-token-value"


@pytest.mark.asyncio
async def test_clear(container: ServiceContainer) -> None:
    await container.operator_actions.set_tokens("access-token-value", "refresh-token-value")

    result = await container.operator_actions.clear()

    assert result.success is True
    assert result.message == "All tokens cleared successfully"
    assert container.table.count() == 0
