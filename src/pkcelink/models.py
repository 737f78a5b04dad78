"""Canonical Pydantic models shared across pkcelink modules.

The models fall into three groups:

**Provider models** -- static, validated descriptors of an identity
provider: :class:`ProviderName` and :class:`ProviderConfig`.

**Credential models** -- the data that flows through an authorization:
:class:`AuthSession` (pending PKCE material), :class:`AuthContext`
(its read-only snapshot), :class:`TokenResponse` (token endpoint JSON), and
:class:`TokenRecord` (what the storage adapter persists).

**Settings models** -- serialised as ``config.json`` in the user's config
directory: :class:`ProviderSettings` and :class:`Settings`.

All models use Pydantic v2.  Timestamps are integer milliseconds since the
Unix epoch so that stored records stay plain JSON.
"""

from __future__ import annotations

import enum
import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pkcelink.exceptions import ConfigurationError

DEFAULT_EXPIRES_IN = 3600
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8765/callback"


def now_ms() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


# --- Providers ---


class ProviderName(str, enum.Enum):
    """Identity providers with a built-in descriptor in :mod:`pkcelink.providers`."""

    GOOGLE = "google"
    SPOTIFY = "spotify"
    FITBIT = "fitbit"
    GITHUB = "github"


class ProviderConfig(BaseModel):
    """Immutable descriptor of one OAuth2 provider.

    Validation runs eagerly so that a missing client id surfaces as a
    :class:`~pkcelink.exceptions.ConfigurationError` when the descriptor is
    built, before any network call is attempted.

    Example::

        ProviderConfig(
            name="spotify",
            client_id="abc",
            auth_endpoint="https://accounts.spotify.com/authorize",
            token_endpoint="https://accounts.spotify.com/api/token",
        )
    """

    model_config = ConfigDict(frozen=True)

    name: ProviderName
    client_id: str = ""
    client_secret: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    auth_endpoint: str = ""
    token_endpoint: str = ""
    revoke_endpoint: Optional[str] = None
    confidential: bool = Field(
        default=False,
        description="Whether the client can hold a secret (sent to the token endpoint)",
    )

    @model_validator(mode="after")
    def _check_required(self) -> ProviderConfig:
        provider = self.name.value
        if not self.client_id:
            raise ConfigurationError(f"Provider '{provider}' is missing a client id")
        if not self.auth_endpoint:
            raise ConfigurationError(f"Provider '{provider}' is missing an authorization endpoint")
        if not self.token_endpoint:
            raise ConfigurationError(f"Provider '{provider}' is missing a token endpoint")
        if self.confidential and not self.client_secret:
            raise ConfigurationError(
                f"Provider '{provider}' is a confidential client and requires a client secret"
            )
        if not self.confidential and self.client_secret:
            raise ConfigurationError(
                f"Provider '{provider}' is a public client and must not carry a client secret"
            )
        return self


# --- Credentials ---


class AuthSession(BaseModel):
    """PKCE material for one pending authorization.

    Lives only between ``create_auth_url`` and ``validate`` on a single
    :class:`~pkcelink.auth.client.AuthClient`.
    """

    model_config = ConfigDict(frozen=True)

    state: str = Field(min_length=16)
    code_verifier: str = Field(min_length=43, max_length=128)


class AuthContext(BaseModel):
    """Snapshot of the pending session, for introspection and tests."""

    state: Optional[str] = None
    code_verifier: Optional[str] = None


class TokenResponse(BaseModel):
    """JSON body returned by a token endpoint.

    Only ``access_token`` is required.  Unknown fields (``id_token`` variants,
    provider extras) are preserved in ``model_extra``.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = DEFAULT_EXPIRES_IN
    token_type: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None


class TokenRecord(BaseModel):
    """The persisted credential for one provider.

    Stored under ``"oauth2.<provider>"`` by a
    :class:`~pkcelink.storage.StorageAdapter`.  A record without a
    ``refresh_token`` cannot be renewed silently.
    """

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: int = Field(description="Expiry in milliseconds since the epoch")

    @classmethod
    def from_response(
        cls,
        response: TokenResponse,
        issued_at: int,
        fallback_refresh_token: Optional[str] = None,
    ) -> TokenRecord:
        """Build a record from a token response received at *issued_at* (ms).

        Args:
            response: The parsed token endpoint response.
            issued_at: Time the response was received, in ms since the epoch.
            fallback_refresh_token: Refresh token to keep when the provider
                does not rotate it.
        """
        return cls(
            access_token=response.access_token,
            refresh_token=response.refresh_token or fallback_refresh_token,
            expires_at=issued_at + response.expires_in * 1000,
        )

    def is_expired(self, now: int, buffer_ms: int = 0) -> bool:
        """Return ``True`` when *now* is past ``expires_at - buffer_ms``."""
        return now > self.expires_at - buffer_ms


# --- Settings ---


class ProviderSettings(BaseModel):
    """Per-provider overrides stored in :class:`Settings`.

    ``client_id_source`` and ``client_secret_source`` use the formats
    understood by :func:`~pkcelink.config.resolve_credential`.
    """

    client_id_source: Optional[str] = None
    client_secret_source: Optional[str] = None
    scopes: Optional[list[str]] = None
    auth_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None
    revoke_endpoint: Optional[str] = None


class StorageBackend(str, enum.Enum):
    """Token storage adapters selectable from :class:`Settings`."""

    FILE = "file"
    DISK = "disk"
    MEMORY = "memory"


class Settings(BaseModel):
    """User-wide configuration persisted at ``~/.config/pkcelink/config.json``.

    Loaded by :func:`~pkcelink.config.load_settings`; environment variables
    ``PKCELINK_REDIRECT_URI`` and ``PKCELINK_STORAGE`` take precedence.
    """

    redirect_uri: str = Field(default=DEFAULT_REDIRECT_URI)
    storage: StorageBackend = Field(default=StorageBackend.FILE)
    providers: dict[str, ProviderSettings] = Field(default_factory=dict)

    def provider(self, name: str) -> ProviderSettings:
        """Return overrides for *name*, or an empty :class:`ProviderSettings`."""
        return self.providers.get(name) or ProviderSettings()

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
