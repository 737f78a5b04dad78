"""Storage adapter contract.

A storage adapter is a minimal key/value store for JSON-serialisable
dictionaries.  The :class:`~pkcelink.auth.client.AuthClient` keeps one
:class:`~pkcelink.models.TokenRecord` per provider under
``"oauth2.<provider>"`` and decides on its own when a record is stale;
adapters carry no token expiry policy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class StorageAdapter(ABC):
    """Abstract base class for token storage backends.

    Implementations must be safe to call repeatedly and must never raise for
    a missing key: :meth:`get` returns ``None`` and :meth:`remove` is a
    no-op.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[dict[str, Any]]:
        """Return the value stored under *key*, or ``None`` when absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: dict[str, Any]) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*.  Missing keys are ignored."""
        ...
