"""Shared test fixtures for pkcelink.

Provides an isolated config environment, a controllable clock, and a fake
token endpoint built on :class:`httpx.MockTransport` so that the auth
client can be exercised end-to-end without network access.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from helpers import REDIRECT_URI, FakeClock, FakeEndpoint
from pkcelink.auth import AuthClient
from pkcelink.models import ProviderConfig
from pkcelink.output import reset_reporter
from pkcelink.providers import list_providers
from pkcelink.storage import MemoryStorage
from pkcelink.transport import HttpTransport


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_reporter_between_tests() -> None:
    """Drop the reporter installed by the CLI callback between tests."""
    yield
    reset_reporter()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration, cache and token storage to ``tmp_path``.

    Clears PKCELINK_* variables and the ``<NAME>_CLIENT_ID`` /
    ``<NAME>_CLIENT_SECRET`` variables of every built-in provider.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("pkcelink.config._is_xdg_platform", lambda: True)

    for var in ("PKCELINK_REDIRECT_URI", "PKCELINK_STORAGE"):
        monkeypatch.delenv(var, raising=False)
    for name in list_providers():
        monkeypatch.delenv(f"{name.upper()}_CLIENT_ID", raising=False)
        monkeypatch.delenv(f"{name.upper()}_CLIENT_SECRET", raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Auth client collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def endpoint() -> FakeEndpoint:
    return FakeEndpoint()


@pytest.fixture
def transport(endpoint: FakeEndpoint) -> HttpTransport:
    """HttpTransport whose requests are answered by ``endpoint``."""
    return HttpTransport(httpx.AsyncClient(transport=httpx.MockTransport(endpoint)))


@pytest.fixture
def provider() -> ProviderConfig:
    """A public provider with a single ``profile`` scope and no revoke endpoint."""
    return ProviderConfig(
        name="google",
        client_id="abc",
        scopes=["profile"],
        auth_endpoint="https://idp.example.com/auth",
        token_endpoint="https://idp.example.com/token",
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def make_client(
    provider: ProviderConfig,
    storage: MemoryStorage,
    transport: HttpTransport,
    clock: FakeClock,
) -> Callable[..., AuthClient]:
    """Factory building an :class:`AuthClient` wired to the fake collaborators."""

    def _make(**overrides: Any) -> AuthClient:
        kwargs: dict[str, Any] = {
            "provider": provider,
            "redirect_uri": REDIRECT_URI,
            "storage": storage,
            "transport": transport,
            "clock": clock,
        }
        kwargs.update(overrides)
        return AuthClient(**kwargs)

    return _make
