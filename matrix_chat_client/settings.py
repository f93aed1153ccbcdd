"""
Persisted client settings: sync filter, transaction counter and sync cursor.
"""

import json
import logging

from .constants import (
    DEFAULT_SYNC_FILTER,
    INITIAL_TRANSACTION_ID,
    SETTING_NEXT_BATCH,
    SETTING_SYNC_FILTER,
    SETTING_TRANSACTION_ID,
)
from .storage_backend import MatrixFolderDataStore
from .storage_paths import MatrixStoragePaths

logger = logging.getLogger("matrix_chat_client.settings")


def default_sync_filter() -> str:
    """Compact JSON form of the default sync filter"""
    return json.dumps(DEFAULT_SYNC_FILTER, separators=(",", ":"))


class ClientSettings:
    """
    Settings provider backed by a MatrixFolderDataStore.

    Every setter writes through to the store before returning, so values
    survive a crash right after the call.
    """

    def __init__(self, store: MatrixFolderDataStore):
        self.store = store

    @classmethod
    def for_account(
        cls,
        store_path: str,
        homeserver: str,
        user_id: str,
        backend: str = "json",
    ) -> "ClientSettings":
        folder = MatrixStoragePaths.get_user_storage_dir(
            store_path, homeserver, user_id
        )
        return cls(MatrixFolderDataStore(folder, backend=backend))

    def get_sync_filter(self) -> str:
        value = self.store.get(SETTING_SYNC_FILTER)
        if isinstance(value, str) and value:
            return value
        return default_sync_filter()

    def set_sync_filter(self, value: str) -> None:
        self.store.upsert(SETTING_SYNC_FILTER, value)

    def get_transaction_id(self) -> int:
        value = self.store.get(SETTING_TRANSACTION_ID)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if value is not None:
            logger.warning(f"Ignoring invalid stored transaction id: {value!r}")
        return INITIAL_TRANSACTION_ID

    def set_transaction_id(self, value: int) -> None:
        self.store.upsert(SETTING_TRANSACTION_ID, value)

    def get_next_batch(self) -> str:
        value = self.store.get(SETTING_NEXT_BATCH)
        return value if isinstance(value, str) else ""

    def set_next_batch(self, value: str) -> None:
        if value:
            self.store.upsert(SETTING_NEXT_BATCH, value)
        else:
            self.store.delete(SETTING_NEXT_BATCH)
