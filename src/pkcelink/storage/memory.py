"""In-process storage with optional per-item time-to-live.

:class:`MemoryStorage` keeps values in a plain dictionary owned by the
instance.  Items may carry a TTL, measured against an injectable
millisecond clock so expiry can be tested deterministically.  Token records
written by the auth client use no TTL.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pkcelink.models import now_ms
from pkcelink.storage.base import StorageAdapter

logger = logging.getLogger(__name__)

SEC_30 = 30 * 1000
MIN_1 = 60 * 1000


@dataclass
class _Item:
    data: dict[str, Any]
    timestamp: int
    ttl: float


class MemoryStorage(StorageAdapter):
    """Dictionary-backed :class:`~pkcelink.storage.base.StorageAdapter`.

    Values are deep-copied on the way in and out so callers cannot mutate
    stored state by accident.

    Args:
        clock: Callable returning the current time in ms since the epoch.
        default_ttl: TTL in ms applied by :meth:`set` when none is given.
            ``math.inf`` (the default) means items never expire.

    Example::

        store = MemoryStorage(clock=lambda: 1_000)
        store.set("k", {"v": 1}, ttl=MIN_1)
        assert store.get("k") == {"v": 1}
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        default_ttl: float = math.inf,
    ) -> None:
        self._clock = clock or now_ms
        self._default_ttl = default_ttl
        self._items: dict[str, _Item] = {}

    def get(self, key: str) -> Optional[dict[str, Any]]:
        item = self._live_item(key)
        if item is None:
            return None
        return copy.deepcopy(item.data)

    def set(self, key: str, value: dict[str, Any], ttl: Optional[float] = None) -> None:
        self._items[key] = _Item(
            data=copy.deepcopy(value),
            timestamp=self._clock(),
            ttl=self._default_ttl if ttl is None else ttl,
        )

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def has(self, key: str) -> bool:
        """Return ``True`` if *key* holds an unexpired item."""
        return self._live_item(key) is not None

    def keys(self) -> list[str]:
        """Return the keys of all unexpired items."""
        return [key for key in list(self._items) if self._live_item(key) is not None]

    def size(self) -> int:
        return len(self.keys())

    def clear(self) -> None:
        self._items.clear()

    def _live_item(self, key: str) -> Optional[_Item]:
        """Return the item for *key*, evicting it first if its TTL has passed."""
        item = self._items.get(key)
        if item is None:
            return None
        if self._clock() - item.timestamp > item.ttl:
            logger.debug("Evicting expired item '%s'", key)
            del self._items[key]
            return None
        return item
