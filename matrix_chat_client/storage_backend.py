"""
Key/value record store for client data.

Supports:
- json: one json file per key
- sqlite: one sqlite db per folder
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .storage_backends import (
    JsonBackend,
    SQLiteBackend,
    normalize_storage_backend,
)
from .storage_paths import MatrixStoragePaths

logger = logging.getLogger("matrix_chat_client.storage")

JsonFilenameResolver = Callable[[str], str]


class MatrixFolderDataStore:
    """
    Record store scoped to one folder.

    For json backend: key -> `<sanitized_key>.json` (or custom filename resolver)
    For sqlite backend: key -> row in `<folder>/<folder_name>.db`; records
    still sitting in json files from an earlier json setup are migrated on read.
    """

    def __init__(
        self,
        folder_path: Path,
        backend: str = "json",
        *,
        json_filename_resolver: JsonFilenameResolver | None = None,
        sqlite_db_filename: str | None = None,
    ) -> None:
        self.folder_path = Path(folder_path)
        self.folder_path.mkdir(parents=True, exist_ok=True)
        self.backend = normalize_storage_backend(backend)

        self._json = JsonBackend(
            self.folder_path, json_filename_resolver or self._default_json_filename
        )
        self._sqlite: SQLiteBackend | None = None
        if self.backend == "sqlite":
            db_filename = sqlite_db_filename or f"{self.folder_path.name or 'store'}.db"
            self._sqlite = SQLiteBackend(self.folder_path / db_filename)

    @staticmethod
    def _default_json_filename(record_key: str) -> str:
        safe_key = MatrixStoragePaths.sanitize_username(record_key.replace("/", "_"))
        if not safe_key:
            safe_key = "unknown"
        return f"{safe_key}.json"

    def get(self, record_key: str) -> Any | None:
        """Read one record from the selected backend."""
        if not record_key:
            return None
        if self._sqlite is None:
            return self._json.get(record_key)

        data = self._sqlite.get(record_key)
        if data is not None:
            return data

        legacy = self._json.get(record_key)
        if legacy is not None:
            self._sqlite.upsert(record_key, legacy)
            self._json.delete(record_key)
            logger.debug(f"Migrated json record {record_key} into sqlite")
        return legacy

    def upsert(self, record_key: str, data: Any) -> None:
        """Create or update one record. Returns once the write is durable."""
        if not record_key:
            return
        if self._sqlite is None:
            self._json.upsert(record_key, data)
        else:
            self._sqlite.upsert(record_key, data)

    def delete(self, record_key: str) -> None:
        if not record_key:
            return
        if self._sqlite is not None:
            self._sqlite.delete(record_key)
        self._json.delete(record_key)
