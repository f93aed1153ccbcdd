"""
JSON storage backend: one small file per setting.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger("matrix_chat_client.storage")


class JsonBackend:
    """
    Each setting lives in ``folder_path / filename_resolver(name)``.

    A write goes to a temporary sibling that is fsynced and renamed over the
    target, so readers see either the old or the new value.
    """

    def __init__(
        self, folder_path: Path, filename_resolver: Callable[[str], str]
    ) -> None:
        self.folder_path = Path(folder_path)
        self.folder_path.mkdir(parents=True, exist_ok=True)
        self._filename_resolver = filename_resolver

    def path_for_key(self, name: str) -> Path:
        return self.folder_path / self._filename_resolver(name)

    def get(self, name: str) -> Any | None:
        path = self.path_for_key(name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not read setting {name} from {path}: {e}")
            return None
        try:
            return json.loads(text)
        except ValueError:
            logger.warning(f"Ignoring undecodable setting file {path}")
            return None

    def upsert(self, name: str, value: Any) -> None:
        path = self.path_for_key(name)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_name, path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def delete(self, name: str) -> None:
        self.path_for_key(name).unlink(missing_ok=True)
