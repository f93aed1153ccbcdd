"""
Storage backend implementations for persisted client data.
"""

from .common import normalize_storage_backend
from .json_backend import JsonBackend
from .sqlite_backend import SQLiteBackend

__all__ = [
    "normalize_storage_backend",
    "JsonBackend",
    "SQLiteBackend",
]
