"""Tests for the pkcelink command line interface."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from pkcelink import __version__
from pkcelink.app import app
from pkcelink.auth import AuthClient
from pkcelink.config import load_settings
from pkcelink.models import StorageBackend, now_ms
from pkcelink.storage import FileStorage


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def spotify_env(isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Configure a Spotify client id in an isolated environment."""
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "sp-id")
    return isolated_config


def _store_token(access_token: str = "stored-token", lifetime_ms: int = 3_600_000) -> Path:
    store = FileStorage()
    key = "oauth2.spotify"
    store.set(
        key,
        {"access_token": access_token, "refresh_token": None, "expires_at": now_ms() + lifetime_ms},
    )
    return store.path_for(key)


class TestGlobalOptions:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, [])
        assert "login" in result.output


class TestToken:
    def test_prints_stored_token(self, runner: CliRunner, spotify_env: Path) -> None:
        _store_token()
        result = runner.invoke(app, ["token", "spotify"])
        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "stored-token"

    def test_not_signed_in(self, runner: CliRunner, spotify_env: Path) -> None:
        result = runner.invoke(app, ["token", "spotify"])
        assert result.exit_code == 3
        assert "Not signed in" in result.output

    def test_expired_token_without_refresh(self, runner: CliRunner, spotify_env: Path) -> None:
        _store_token(lifetime_ms=-1_000)
        result = runner.invoke(app, ["token", "spotify"])
        assert result.exit_code == 3

    def test_unknown_provider(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["token", "myspace"])
        assert result.exit_code == 2
        assert "Unknown provider" in result.output

    def test_unconfigured_provider(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["token", "spotify"])
        assert result.exit_code == 2
        assert "client id" in result.output


class TestLogout:
    def test_removes_token(self, runner: CliRunner, spotify_env: Path) -> None:
        path = _store_token()
        result = runner.invoke(app, ["logout", "spotify"])
        assert result.exit_code == 0, result.output
        assert not path.exists()

    def test_when_signed_out(self, runner: CliRunner, spotify_env: Path) -> None:
        result = runner.invoke(app, ["logout", "spotify"])
        assert result.exit_code == 0


class TestLogin:
    def test_already_signed_in(self, runner: CliRunner, spotify_env: Path) -> None:
        _store_token()
        result = runner.invoke(app, ["login", "spotify", "--no-browser"])
        assert result.exit_code == 0, result.output
        assert "Signed in to spotify" in result.output

    def test_denied(
        self, runner: CliRunner, spotify_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "pkcelink.auth.launcher.typer.prompt",
            lambda *args, **kwargs: "http://127.0.0.1:8765/callback?error=access_denied",
        )
        result = runner.invoke(app, ["login", "spotify", "--no-browser"])
        assert result.exit_code == 3
        assert "access_denied" in result.output

    def test_signs_in(
        self, runner: CliRunner, spotify_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[Any] = []

        async def record_call(self: AuthClient) -> bool:
            calls.append(self.provider.name.value)
            return True

        monkeypatch.setattr(AuthClient, "authenticate", record_call)
        result = runner.invoke(app, ["login", "spotify"])
        assert result.exit_code == 0, result.output
        assert calls == ["spotify"]


class TestStatus:
    def test_all_providers(self, runner: CliRunner, spotify_env: Path) -> None:
        _store_token()
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0, result.output
        lines = result.stdout.strip().splitlines()
        assert lines[0] == "provider\tconfigured\tsigned_in"
        assert "spotify\tyes\tyes" in lines
        assert "google\tno\tno" in lines

    def test_json(self, runner: CliRunner, spotify_env: Path) -> None:
        result = runner.invoke(app, ["--json", "status", "spotify"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [
            {"provider": "spotify", "configured": True, "signed_in": False}
        ]

    def test_single_unconfigured_provider(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["status", "google"])
        assert result.exit_code == 2


class TestConfigure:
    def test_literal_client_id(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(
            app, ["configure", "google", "--client-id", "g-id", "--scopes", "openid email"]
        )
        assert result.exit_code == 0, result.output
        assert "Configured google." in result.output

        saved = load_settings().provider("google")
        assert saved.client_id_source == "g-id"
        assert saved.scopes == ["openid", "email"]

        status = runner.invoke(app, ["--json", "status", "google"])
        assert json.loads(status.stdout)[0]["configured"] is True

    def test_unset_source_warns(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["configure", "spotify", "--client-id", "env:MY_SPOTIFY_ID"])
        assert result.exit_code == 0, result.output
        assert "Warning:" in result.output
        assert "MY_SPOTIFY_ID" in result.output
        assert load_settings().provider("spotify").client_id_source == "env:MY_SPOTIFY_ID"

    def test_keeps_other_fields(self, runner: CliRunner, isolated_config: Path) -> None:
        runner.invoke(app, ["configure", "github", "--client-id", "gh-id"])
        runner.invoke(app, ["configure", "github", "--client-secret", "gh-secret"])
        saved = load_settings().provider("github")
        assert saved.client_id_source == "gh-id"
        assert saved.client_secret_source == "gh-secret"

    def test_env_overrides_not_persisted(
        self, runner: CliRunner, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PKCELINK_STORAGE", "memory")
        result = runner.invoke(app, ["configure", "google", "--client-id", "g-id"])
        assert result.exit_code == 0, result.output
        assert load_settings(env_overrides=False).storage is StorageBackend.FILE

    def test_unknown_provider(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["configure", "myspace", "--client-id", "x"])
        assert result.exit_code == 2
        assert "Unknown provider" in result.output
