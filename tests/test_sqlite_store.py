import sqlite3
from pathlib import Path

from tokenkeeper.clients.sqlite_store import SQLiteTokenTable


def _row_values(**overrides):
    values = {
        "access_token": "enc-access",
        "refresh_token": "enc-refresh",
        "expires_at": "2030-01-01T00:00:00.000000+00:00",
        "updated_at": "2029-12-31T23:00:00.000000+00:00",
    }
    values.update(overrides)
    return values


def test_schema_creates_table_and_indexes(tmp_path: Path) -> None:
    table = SQLiteTokenTable(str(tmp_path / "nested" / "tokens.db"))

    with sqlite3.connect(table.db_path) as conn:
        names = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE tbl_name = 'oauth_tokens'")
        }

    assert "oauth_tokens" in names
    assert "oauth_tokens_expires_at_idx" in names
    assert "oauth_tokens_updated_at_idx" in names


def test_insert_and_find_latest(tmp_path: Path) -> None:
    table = SQLiteTokenTable(str(tmp_path / "tokens.db"))
    assert table.find_latest() is None

    inserted = table.insert_one(**_row_values())

    assert inserted["id"] >= 1
    assert table.find_latest() == inserted
    assert table.count() == 1


def test_find_latest_prefers_most_recently_updated(tmp_path: Path) -> None:
    table = SQLiteTokenTable(str(tmp_path / "tokens.db"))
    newer = table.insert_one(**_row_values(updated_at="2030-01-02T00:00:00.000000+00:00"))
    table.insert_one(**_row_values(updated_at="2030-01-01T00:00:00.000000+00:00"))

    assert table.find_latest()["id"] == newer["id"]


def test_update_by_id_overwrites_fields(tmp_path: Path) -> None:
    table = SQLiteTokenTable(str(tmp_path / "tokens.db"))
    inserted = table.insert_one(**_row_values())

    changed = table.update_by_id(
        inserted["id"],
        access_token="enc-access-2",
        refresh_token="enc-refresh-2",
        expires_at=None,
        updated_at="2030-01-01T00:00:00.000000+00:00",
    )

    latest = table.find_latest()
    assert changed == 1
    assert latest["access_token"] == "enc-access-2"
    assert latest["refresh_token"] == "enc-refresh-2"
    assert latest["expires_at"] is None


def test_update_missing_row_reports_zero(tmp_path: Path) -> None:
    table = SQLiteTokenTable(str(tmp_path / "tokens.db"))

    assert table.update_by_id(42, **_row_values()) == 0


def test_delete_all_removes_every_row(tmp_path: Path) -> None:
    table = SQLiteTokenTable(str(tmp_path / "tokens.db"))
    table.insert_one(**_row_values())
    table.insert_one(**_row_values())

    assert table.delete_all() == 2
    assert table.find_latest() is None


def test_separate_instances_share_state(tmp_path: Path) -> None:
    path = str(tmp_path / "tokens.db")
    writer = SQLiteTokenTable(path)
    reader = SQLiteTokenTable(path)

    writer.insert_one(**_row_values())

    assert reader.find_latest() is not None
