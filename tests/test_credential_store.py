from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tokenkeeper.dependencies import ServiceContainer


@pytest.mark.asyncio
async def test_latest_is_none_on_empty_store(container: ServiceContainer) -> None:
    assert await container.store.latest() is None


@pytest.mark.asyncio
async def test_insert_stores_only_ciphertext(container: ServiceContainer) -> None:
    before = datetime.now(timezone.utc)

    record = await container.store.insert("access-plain", "refresh-plain", 3600)

    row = container.table.find_latest()
    assert row["access_token"] != "access-plain"
    assert row["refresh_token"] != "refresh-plain"
    assert container.store.decrypt(row["access_token"]) == "access-plain"
    assert container.store.decrypt(row["refresh_token"]) == "refresh-plain"

    assert record.id == row["id"]
    assert record.expires_at is not None
    expected = before + timedelta(seconds=3600)
    assert abs((record.expires_at - expected).total_seconds()) < 5
    assert record.updated_at >= before


@pytest.mark.asyncio
async def test_update_overwrites_in_place(container: ServiceContainer) -> None:
    original = await container.store.insert("access-1", "refresh-1", 60)

    await container.store.update(original.id, "access-2", "refresh-2", 7200)

    latest = await container.store.latest()
    assert latest is not None
    assert latest.id == original.id
    assert container.table.count() == 1
    assert container.store.decrypt(latest.access_token_encrypted) == "access-2"
    assert container.store.decrypt(latest.refresh_token_encrypted) == "refresh-2"
    assert latest.updated_at >= original.updated_at
    assert latest.expires_at > original.expires_at


@pytest.mark.asyncio
async def test_update_of_missing_record_raises(container: ServiceContainer) -> None:
    with pytest.raises(LookupError):
        await container.store.update(999, "a", "b", 60)


@pytest.mark.asyncio
async def test_clear_removes_all_records(container: ServiceContainer) -> None:
    await container.store.insert("access-1", "refresh-1", 60)
    container.table.insert_one(
        access_token="x", refresh_token="y", expires_at=None, updated_at="2020-01-01T00:00:00+00:00"
    )

    await container.store.clear()

    assert await container.store.latest() is None
    assert container.table.count() == 0


@pytest.mark.asyncio
async def test_null_expiry_is_preserved(container: ServiceContainer) -> None:
    container.table.insert_one(
        access_token=container.store.encrypt("a"),
        refresh_token=container.store.encrypt("r"),
        expires_at=None,
        updated_at=datetime.now(timezone.utc).isoformat(),
    )

    record = await container.store.latest()

    assert record is not None
    assert record.expires_at is None


@pytest.mark.asyncio
async def test_reveal_decrypts_both_tokens(container: ServiceContainer) -> None:
    record = await container.store.insert("access-plain", "refresh-plain", 600)

    revealed = container.store.reveal(record)

    assert revealed.access_token == "access-plain"
    assert revealed.refresh_token == "refresh-plain"
    assert revealed.expires_at == record.expires_at
