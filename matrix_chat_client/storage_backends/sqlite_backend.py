"""
SQLite storage backend: every setting of one account in a single database.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from contextlib import closing
from pathlib import Path
from typing import Any

logger = logging.getLogger("matrix_chat_client.storage")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    name TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL
)
"""


class SQLiteBackend:
    """Settings table in ``db_path``. Writes are synced before returning."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(_SCHEMA)

    def _connect(self) -> closing[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.execute("PRAGMA synchronous = FULL")
        return closing(conn)

    def get(self, name: str) -> Any | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM settings WHERE name = ?", (name,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning(f"Could not read setting {name} from {self.db_path}: {e}")
            return None
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError:
            logger.warning(f"Ignoring undecodable setting {name} in {self.db_path}")
            return None

    def upsert(self, name: str, value: Any) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO settings (name, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(name) DO UPDATE SET "
                "value = excluded.value, updated_at = excluded.updated_at",
                (name, json.dumps(value, ensure_ascii=False), time.time()),
            )

    def delete(self, name: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM settings WHERE name = ?", (name,))
