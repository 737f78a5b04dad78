"""Disk-backed storage on top of :mod:`diskcache`.

Useful when several processes share one token store: :class:`diskcache.Cache`
serialises writes through SQLite, so each ``set`` and ``delete`` is atomic
across processes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import diskcache

from pkcelink.storage.base import StorageAdapter


class DiskCacheStorage(StorageAdapter):
    """:class:`~pkcelink.storage.base.StorageAdapter` backed by :class:`diskcache.Cache`.

    Entries never expire; token staleness is evaluated by the auth client.

    Args:
        cache_dir: Root directory for the cache.  A ``tokens/``
            subdirectory is created inside it.
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir) / "tokens"
        self._cache = diskcache.Cache(str(self._cache_dir))

    def get(self, key: str) -> Optional[dict[str, Any]]:
        value = self._cache.get(key)
        return value if isinstance(value, dict) else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        self._cache.set(key, value)

    def remove(self, key: str) -> None:
        self._cache.delete(key)

    def stats(self) -> dict[str, Any]:
        """Return the number of stored entries and the cache directory."""
        return {"size": len(self._cache), "directory": str(self._cache_dir)}

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()
