"""Token storage adapters.

This package provides the :class:`StorageAdapter` contract and three
implementations:

- :class:`MemoryStorage` -- per-instance dictionary with optional TTL.
- :class:`FileStorage` -- one ``0o600`` JSON file per key.
- :class:`DiskCacheStorage` -- :mod:`diskcache`-backed, safe across processes.

:func:`create_storage` picks one from the effective
:class:`~pkcelink.models.Settings`.
"""

from __future__ import annotations

from typing import Optional

from pkcelink.config import get_cache_dir
from pkcelink.models import Settings, StorageBackend
from pkcelink.storage.base import StorageAdapter
from pkcelink.storage.disk import DiskCacheStorage
from pkcelink.storage.file import FileStorage
from pkcelink.storage.memory import MemoryStorage


def create_storage(settings: Optional[Settings] = None) -> StorageAdapter:
    """Instantiate the storage adapter selected by ``settings.storage``."""
    backend = (settings or Settings()).storage
    if backend == StorageBackend.MEMORY:
        return MemoryStorage()
    if backend == StorageBackend.DISK:
        return DiskCacheStorage(get_cache_dir())
    return FileStorage()


__all__ = [
    "DiskCacheStorage",
    "FileStorage",
    "MemoryStorage",
    "StorageAdapter",
    "create_storage",
]
