"""Where pkcelink keeps its files, and how it reads its settings.

* **Directories** -- :func:`get_config_dir`, :func:`get_data_dir` and
  :func:`get_cache_dir` follow the XDG base directory variables on Linux and
  the BSDs, and live under ``~/.pkcelink/`` elsewhere.
* **Settings** -- one ``config.json`` validated as
  :class:`~pkcelink.models.Settings`.  ``PKCELINK_REDIRECT_URI`` and
  ``PKCELINK_STORAGE`` override the file.
* **Credential sources** -- :func:`resolve_credential` turns ``env:NAME``,
  ``file:/path`` or a literal into a client id or secret.

Every file is written through :func:`atomic_write`: readers see either the
old content or the new content, never a partial file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from pkcelink.exceptions import ConfigurationError
from pkcelink.models import Settings, StorageBackend

_APP_NAME = "pkcelink"
_CONFIG_FILENAME = "config.json"

# kind -> (XDG variable, default below $HOME, subdirectory of ~/.pkcelink)
_DIRS: dict[str, tuple[str, tuple[str, ...], Optional[str]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "data"),
}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    """Resolve and create the *kind* directory (``config``, ``cache`` or ``data``)."""
    env_var, home_parts, fallback_sub = _DIRS[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or str(Path.home().joinpath(*home_parts))
        path = Path(base) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_sub:
            path = path / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/pkcelink`` (``~/.config/pkcelink``), or ``~/.pkcelink``."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Directory of the ``disk`` storage backend.

    ``$XDG_CACHE_HOME/pkcelink`` (``~/.cache/pkcelink``), or ``~/.pkcelink/cache``.
    """
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory of the ``file`` storage backend's token files.

    ``$XDG_DATA_HOME/pkcelink`` (``~/.local/share/pkcelink``), or ``~/.pkcelink/data``.
    """
    return _app_dir("data")


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* in one rename.

    The content is written to a temporary sibling, flushed to disk and then
    moved over *path* with :func:`os.replace`.  *mode* (e.g. ``0o600``) is
    applied before the first byte is written, so secrets are never readable
    by others.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            if mode is not None:
                os.fchmod(fh.fileno(), mode)
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def settings_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_settings(env_overrides: bool = True) -> Settings:
    """Read ``config.json`` (defaults when absent) and apply environment overrides.

    Pass ``env_overrides=False`` to get the file content alone, e.g. before
    writing it back with :func:`save_settings`.

    Raises:
        ConfigurationError: If the file is not valid JSON, does not validate,
            or ``PKCELINK_STORAGE`` names an unknown backend.
    """
    path = settings_path()
    settings = Settings()
    if path.is_file():
        try:
            settings = Settings.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid settings at {path}: {exc}") from exc

    if not env_overrides:
        return settings

    redirect_uri = os.environ.get("PKCELINK_REDIRECT_URI")
    if redirect_uri:
        settings.redirect_uri = redirect_uri

    backend = os.environ.get("PKCELINK_STORAGE")
    if backend:
        try:
            settings.storage = StorageBackend(backend.lower())
        except ValueError as exc:
            choices = ", ".join(b.value for b in StorageBackend)
            raise ConfigurationError(
                f"Unknown storage backend '{backend}' (expected one of: {choices})"
            ) from exc
    return settings


def save_settings(settings: Settings) -> None:
    atomic_write(settings_path(), json.dumps(settings.to_json_dict(), indent=2) + "\n")


def _from_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise ConfigurationError(f"Environment variable '{name}' is not set")
    return value


def _from_file(location: str) -> str:
    path = Path(location).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"Credential file not found: {path}")
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc


_SOURCES: dict[str, Callable[[str], str]] = {"env:": _from_env, "file:": _from_file}


def resolve_credential(source: str) -> str:
    """Return the credential described by *source*.

    ``env:NAME`` reads an environment variable, ``file:/path`` reads a file
    (surrounding whitespace stripped), and anything else is taken literally:
    public client ids are not secret.

    Raises:
        ConfigurationError: If the variable is unset or the file cannot be read.
    """
    for prefix, reader in _SOURCES.items():
        if source.startswith(prefix):
            return reader(source[len(prefix):])
    return source
