"""SQLite-backed storage for the single OAuth token table."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional


class SQLiteTokenTable:
    """Thin driver over the ``oauth_tokens`` table.

    Every call opens its own connection and commits before returning, so each
    write is durable and every read observes what other processes wrote.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self.ensure_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    access_token TEXT NOT NULL,
                    refresh_token TEXT NOT NULL,
                    expires_at TEXT,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS oauth_tokens_expires_at_idx "
                "ON oauth_tokens (expires_at)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS oauth_tokens_updated_at_idx "
                "ON oauth_tokens (updated_at)"
            )

    def insert_one(
        self,
        *,
        access_token: str,
        refresh_token: str,
        expires_at: Optional[str],
        updated_at: str,
    ) -> Dict[str, Any]:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO oauth_tokens (access_token, refresh_token, expires_at, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (access_token, refresh_token, expires_at, updated_at),
            )
            row = conn.execute(
                "SELECT * FROM oauth_tokens WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return dict(row)

    def find_latest(self) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM oauth_tokens ORDER BY updated_at DESC, id DESC LIMIT 1"
            ).fetchone()
        if not row:
            return None
        return dict(row)

    def update_by_id(
        self,
        record_id: int,
        *,
        access_token: str,
        refresh_token: str,
        expires_at: Optional[str],
        updated_at: str,
    ) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE oauth_tokens
                SET access_token = ?, refresh_token = ?, expires_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (access_token, refresh_token, expires_at, updated_at, record_id),
            )
            return cursor.rowcount

    def delete_all(self) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM oauth_tokens")
            return cursor.rowcount

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM oauth_tokens").fetchone()
        return int(row["total"])


__all__ = ["SQLiteTokenTable"]
