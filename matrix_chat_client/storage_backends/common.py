"""
Common helpers for storage backends.
"""

from __future__ import annotations

_STORAGE_BACKEND_ALIASES = {
    "json": "json",
    "sqlite": "sqlite",
    "sqlite3": "sqlite",
}


def normalize_storage_backend(value: str | None) -> str:
    """Normalize storage backend value to json/sqlite."""
    if not isinstance(value, str):
        return "json"
    normalized = value.strip().lower()
    return _STORAGE_BACKEND_ALIASES.get(normalized, "json")

