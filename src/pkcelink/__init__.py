"""pkcelink -- OAuth2 Authorization Code + PKCE credentials that look after themselves.

pkcelink signs a user in to a third-party identity provider, stores the
issued tokens, refreshes them shortly before they expire, and revokes them on
sign-out.  Other code only ever asks for a bearer token.

Typical workflow::

    pkcelink login spotify     # browser consent, tokens stored locally
    pkcelink token spotify     # print a fresh access token
    pkcelink logout spotify    # revoke and forget

Modules:
    auth: The :class:`~pkcelink.auth.AuthClient` state machine, provider
        strategies, and launchers.
    providers: Built-in provider descriptors.
    storage: Token storage adapters.
    crypto: Random string and PKCE helpers.
    models: Pydantic models shared across the package.
    config: XDG-aware settings and credential source resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
