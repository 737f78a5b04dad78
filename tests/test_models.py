"""Tests for the pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pkcelink.exceptions import ConfigurationError
from pkcelink.models import (
    AuthSession,
    ProviderConfig,
    ProviderName,
    Settings,
    StorageBackend,
    TokenRecord,
    TokenResponse,
)

_ENDPOINTS = {
    "auth_endpoint": "https://idp.example.com/auth",
    "token_endpoint": "https://idp.example.com/token",
}


class TestProviderConfig:
    def test_minimal(self) -> None:
        config = ProviderConfig(name="spotify", client_id="abc", **_ENDPOINTS)
        assert config.name is ProviderName.SPOTIFY
        assert config.scopes == []
        assert config.revoke_endpoint is None
        assert config.confidential is False

    def test_frozen(self) -> None:
        config = ProviderConfig(name="spotify", client_id="abc", **_ENDPOINTS)
        with pytest.raises(ValidationError):
            config.client_id = "other"  # type: ignore[misc]

    def test_missing_client_id(self) -> None:
        with pytest.raises(ConfigurationError, match="client id"):
            ProviderConfig(name="google", **_ENDPOINTS)

    def test_missing_token_endpoint(self) -> None:
        with pytest.raises(ConfigurationError, match="token endpoint"):
            ProviderConfig(name="google", client_id="abc", auth_endpoint="https://a")

    def test_missing_auth_endpoint(self) -> None:
        with pytest.raises(ConfigurationError, match="authorization endpoint"):
            ProviderConfig(name="google", client_id="abc", token_endpoint="https://t")

    def test_confidential_requires_secret(self) -> None:
        with pytest.raises(ConfigurationError, match="client secret"):
            ProviderConfig(name="github", client_id="abc", confidential=True, **_ENDPOINTS)

    def test_public_rejects_secret(self) -> None:
        with pytest.raises(ConfigurationError, match="public client"):
            ProviderConfig(name="google", client_id="abc", client_secret="s", **_ENDPOINTS)

    def test_unknown_name(self) -> None:
        with pytest.raises(ValidationError):
            ProviderConfig(name="myspace", client_id="abc", **_ENDPOINTS)


class TestAuthSession:
    def test_short_state_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AuthSession(state="short", code_verifier="v" * 43)

    @pytest.mark.parametrize("length", [42, 129])
    def test_verifier_bounds(self, length: int) -> None:
        with pytest.raises(ValidationError):
            AuthSession(state="s" * 16, code_verifier="v" * length)


class TestTokenRecord:
    def test_from_response(self) -> None:
        response = TokenResponse(access_token="AT", refresh_token="RT", expires_in=120)
        record = TokenRecord.from_response(response, issued_at=1_000)
        assert record == TokenRecord(access_token="AT", refresh_token="RT", expires_at=121_000)

    def test_default_lifetime(self) -> None:
        record = TokenRecord.from_response(TokenResponse(access_token="AT"), issued_at=0)
        assert record.expires_at == 3_600_000

    def test_fallback_refresh_token(self) -> None:
        record = TokenRecord.from_response(
            TokenResponse(access_token="AT"), issued_at=0, fallback_refresh_token="old"
        )
        assert record.refresh_token == "old"

    def test_rotated_refresh_token_wins(self) -> None:
        record = TokenRecord.from_response(
            TokenResponse(access_token="AT", refresh_token="new"),
            issued_at=0,
            fallback_refresh_token="old",
        )
        assert record.refresh_token == "new"

    def test_is_expired(self) -> None:
        record = TokenRecord(access_token="AT", expires_at=100_000)
        assert record.is_expired(100_000) is False
        assert record.is_expired(100_001) is True
        assert record.is_expired(40_000, buffer_ms=60_000) is False
        assert record.is_expired(40_001, buffer_ms=60_000) is True

    def test_json_roundtrip(self) -> None:
        record = TokenRecord(access_token="AT", refresh_token=None, expires_at=5)
        assert TokenRecord.model_validate(record.model_dump(mode="json")) == record


class TestTokenResponse:
    def test_extra_fields_kept(self) -> None:
        response = TokenResponse.model_validate(
            {"access_token": "AT", "token_type": "Bearer", "x_user_id": "42"}
        )
        assert response.model_extra == {"x_user_id": "42"}

    def test_access_token_required(self) -> None:
        with pytest.raises(ValidationError):
            TokenResponse.model_validate({"token_type": "Bearer"})


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.redirect_uri == "http://127.0.0.1:8765/callback"
        assert settings.storage is StorageBackend.FILE
        assert settings.providers == {}

    def test_provider_overrides(self) -> None:
        settings = Settings.model_validate(
            {"providers": {"google": {"client_id_source": "env:G_ID", "scopes": ["email"]}}}
        )
        assert settings.provider("google").client_id_source == "env:G_ID"
        assert settings.provider("spotify").client_id_source is None

    def test_to_json_dict_drops_unset(self) -> None:
        data = Settings(storage="memory").to_json_dict()
        assert data == {
            "redirect_uri": "http://127.0.0.1:8765/callback",
            "storage": "memory",
            "providers": {},
        }
