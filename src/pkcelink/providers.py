"""Built-in provider descriptors and their construction from configuration.

Each known :class:`~pkcelink.models.ProviderName` has a static entry in
:data:`PROVIDER_DEFAULTS` (endpoints, default scopes, client type).  Client
credentials are never hard-coded; :func:`get_provider_config` pulls them
from :class:`~pkcelink.models.Settings` or from ``<NAME>_CLIENT_ID`` /
``<NAME>_CLIENT_SECRET`` environment variables.
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from pkcelink.config import resolve_credential
from pkcelink.exceptions import ConfigurationError
from pkcelink.models import ProviderConfig, ProviderName, Settings

PROVIDER_DEFAULTS: dict[ProviderName, dict[str, Any]] = {
    ProviderName.GOOGLE: {
        "scopes": ["openid", "profile"],
        "auth_endpoint": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_endpoint": "https://oauth2.googleapis.com/token",
        "revoke_endpoint": "https://oauth2.googleapis.com/revoke",
        "confidential": False,
    },
    ProviderName.SPOTIFY: {
        "scopes": [],
        "auth_endpoint": "https://accounts.spotify.com/authorize",
        "token_endpoint": "https://accounts.spotify.com/api/token",
        "revoke_endpoint": None,
        "confidential": False,
    },
    ProviderName.FITBIT: {
        "scopes": [],
        "auth_endpoint": "https://www.fitbit.com/oauth2/authorize",
        "token_endpoint": "https://api.fitbit.com/oauth2/token",
        "revoke_endpoint": "https://api.fitbit.com/oauth2/revoke",
        "confidential": False,
    },
    ProviderName.GITHUB: {
        "scopes": ["user"],
        "auth_endpoint": "https://github.com/login/oauth/authorize",
        "token_endpoint": "https://github.com/login/oauth/access_token",
        "revoke_endpoint": None,
        "confidential": True,
    },
}


def list_providers() -> list[str]:
    """Return the names of all built-in providers, sorted."""
    return sorted(name.value for name in PROVIDER_DEFAULTS)


def _parse_name(name: str | ProviderName) -> ProviderName:
    try:
        return ProviderName(name)
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown provider '{name}'. Available providers: {', '.join(list_providers())}"
        ) from exc


def _lookup(source: Optional[str], env_var: str, environ: Mapping[str, str]) -> Optional[str]:
    if source:
        return resolve_credential(source)
    return environ.get(env_var) or None


def get_provider_config(
    name: str | ProviderName,
    settings: Optional[Settings] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ProviderConfig:
    """Build the :class:`~pkcelink.models.ProviderConfig` for *name*.

    Precedence for the client id: ``client_id_source`` in settings, then the
    ``<NAME>_CLIENT_ID`` environment variable.  The secret follows the same
    rule with ``client_secret_source`` / ``<NAME>_CLIENT_SECRET`` and is only
    read for confidential providers.  Scopes and endpoints in settings
    override the built-in defaults.

    Args:
        name: Provider name, e.g. ``"spotify"``.
        settings: Effective settings; defaults are used when ``None``.
        environ: Environment mapping; ``os.environ`` when ``None``.

    Raises:
        ConfigurationError: If the provider is unknown or a required field
            (client id, secret for confidential clients) is missing.
    """
    provider = _parse_name(name)
    env = os.environ if environ is None else environ
    overrides = (settings or Settings()).provider(provider.value)
    defaults = PROVIDER_DEFAULTS[provider]
    prefix = provider.value.upper()

    fields: dict[str, Any] = dict(defaults)
    fields["client_id"] = _lookup(overrides.client_id_source, f"{prefix}_CLIENT_ID", env) or ""
    if defaults["confidential"]:
        fields["client_secret"] = _lookup(
            overrides.client_secret_source, f"{prefix}_CLIENT_SECRET", env
        )
    if overrides.scopes is not None:
        fields["scopes"] = list(overrides.scopes)
    for key in ("auth_endpoint", "token_endpoint", "revoke_endpoint"):
        value = getattr(overrides, key)
        if value:
            fields[key] = value

    return ProviderConfig(name=provider, **fields)
