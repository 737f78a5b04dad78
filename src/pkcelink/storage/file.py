"""JSON-file storage, one file per key.

Files live in ``~/.local/share/pkcelink/tokens/<key>.json`` (XDG) or the
platform-equivalent directory.  Writes go through
:func:`~pkcelink.config.atomic_write` with ``0o600`` permissions so tokens
are never world-readable, even momentarily.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from pkcelink.config import atomic_write, get_data_dir
from pkcelink.storage.base import StorageAdapter

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _tokens_dir() -> Path:
    """Return the default tokens directory, creating it if needed."""
    path = get_data_dir() / "tokens"
    path.mkdir(parents=True, exist_ok=True)
    return path


class FileStorage(StorageAdapter):
    """Persist each key as a small JSON document on disk.

    Args:
        directory: Where to keep the files.  Defaults to the ``tokens``
            directory under :func:`~pkcelink.config.get_data_dir`.

    Example::

        store = FileStorage()
        store.set("oauth2.spotify", {"access_token": "tok", "expires_at": 0})
        assert store.get("oauth2.spotify")["access_token"] == "tok"
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self._directory = Path(directory) if directory is not None else _tokens_dir()

    @property
    def directory(self) -> Path:
        """The directory holding the JSON files."""
        return self._directory

    def path_for(self, key: str) -> Path:
        """Return the file path used for *key*."""
        return self._directory / f"{_UNSAFE_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> Optional[dict[str, Any]]:
        """Load the value for *key*.

        Returns:
            The stored dictionary, or ``None`` if the file does not exist or
            cannot be parsed.
        """
        path = self.path_for(key)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable token file %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring token file %s: expected a JSON object", path)
            return None
        return data

    def set(self, key: str, value: dict[str, Any]) -> None:
        """Write *value* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written (permissions, disk full, etc.).
        """
        atomic_write(self.path_for(key), json.dumps(value, indent=2) + "\n", mode=0o600)

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        if path.is_file():
            path.unlink()
