"""OAuth2 Authorization Code + PKCE client.

The main entry points are:

- :class:`AuthClient` -- per-provider state machine: authorization URL,
  code validation, lazy refresh, sign-out.
- :class:`ProviderStrategy` and :func:`get_strategy` -- provider-facing
  token endpoint calls, one implementation per client type.
- :class:`AuthLauncher`, :class:`LocalServerLauncher`,
  :class:`ManualLauncher` -- ways of taking the user through the consent
  screen.

Typical usage::

    from pkcelink.auth import AuthClient, LocalServerLauncher
    from pkcelink.providers import get_provider_config

    client = AuthClient(
        get_provider_config("google"),
        "http://127.0.0.1:8765/callback",
        launcher=LocalServerLauncher(),
    )
    await client.authenticate()
    token = await client.get_auth_token()
"""

from pkcelink.auth.client import REFRESH_BUFFER_MS, AuthClient
from pkcelink.auth.launcher import (
    AuthLauncher,
    LocalServerLauncher,
    ManualLauncher,
    parse_redirect,
)
from pkcelink.auth.strategies import (
    ConfidentialPKCEStrategy,
    ProviderStrategy,
    PublicPKCEStrategy,
    get_strategy,
)

__all__ = [
    "AuthClient",
    "AuthLauncher",
    "ConfidentialPKCEStrategy",
    "LocalServerLauncher",
    "ManualLauncher",
    "ProviderStrategy",
    "PublicPKCEStrategy",
    "REFRESH_BUFFER_MS",
    "get_strategy",
    "parse_redirect",
]
