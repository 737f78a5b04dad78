"""Provider strategies: how to talk to one family of OAuth2 providers.

A :class:`ProviderStrategy` owns the four provider-facing steps of the
Authorization Code + PKCE grant (:rfc:`6749`, :rfc:`7636`):

1. build the authorization URL,
2. exchange the returned code for tokens,
3. refresh an access token,
4. revoke a token.

Two implementations cover the supported providers:

- :class:`PublicPKCEStrategy` -- public clients (browser extensions, CLIs)
  that cannot keep a secret.  Used for Google, Spotify and Fitbit.
- :class:`ConfidentialPKCEStrategy` -- adds the ``client_secret`` to every
  token endpoint call.  Used for GitHub.

:func:`get_strategy` selects one from ``ProviderConfig.name``.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
from pydantic import ValidationError

from pkcelink.crypto import create_code_challenge
from pkcelink.exceptions import InvalidGrantError, TokenExchangeError
from pkcelink.models import AuthSession, ProviderConfig, ProviderName, TokenResponse
from pkcelink.transport import HttpTransport

logger = logging.getLogger(__name__)

INVALID_GRANT = "invalid_grant"


def _parse_token_response(response: httpx.Response) -> Optional[TokenResponse]:
    """Return the parsed token body, or ``None`` if it is not a usable token response."""
    try:
        return TokenResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return None


class ProviderStrategy:
    """Base strategy implementing the public-client PKCE grant.

    Subclasses adjust the form fields sent to the token endpoints through
    :meth:`client_credentials`.

    Args:
        provider: The provider descriptor.
        transport: Transport used for token endpoint calls.
    """

    def __init__(self, provider: ProviderConfig, transport: HttpTransport) -> None:
        self.provider = provider
        self.transport = transport

    def client_credentials(self) -> dict[str, str]:
        """Form fields identifying the client on token endpoint calls."""
        return {"client_id": self.provider.client_id}

    def create_authorization_url(self, session: AuthSession, redirect_uri: str) -> str:
        """Return the authorization endpoint URL for *session*.

        Query parameters already present on the configured endpoint are
        kept; the PKCE parameters are appended after them.
        """
        parts = urlsplit(self.provider.auth_endpoint)
        query = parse_qsl(parts.query, keep_blank_values=True)
        query.extend(
            [
                ("client_id", self.provider.client_id),
                ("response_type", "code"),
                ("scope", " ".join(self.provider.scopes)),
                ("redirect_uri", redirect_uri),
                ("code_challenge_method", "S256"),
                ("code_challenge", create_code_challenge(session.code_verifier)),
                ("state", session.state),
            ]
        )
        return urlunsplit(parts._replace(query=urlencode(query)))

    async def exchange_code(
        self, code: str, code_verifier: str, redirect_uri: str
    ) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Raises:
            TokenExchangeError: On a non-2xx response, or a 2xx body without
                an ``access_token``.
            TransientNetworkError: If the token endpoint is unreachable.
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
            **self.client_credentials(),
        }
        response = await self.transport.post_form(self.provider.token_endpoint, data)
        name = self.provider.name.value

        if not response.is_success:
            raise TokenExchangeError(
                f"Token exchange with {name} failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
                provider=name,
            )

        token = _parse_token_response(response)
        if token is None:
            raise TokenExchangeError(
                f"Token exchange with {name} returned no access token",
                status_code=response.status_code,
                body=response.text,
                provider=name,
            )
        return token

    async def refresh(self, refresh_token: str) -> Optional[TokenResponse]:
        """Request a new access token with *refresh_token*.

        Returns:
            The token response, or ``None`` on any failure that may succeed
            if retried later.

        Raises:
            InvalidGrantError: If the provider reports ``invalid_grant``.
            TransientNetworkError: If the token endpoint is unreachable.
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            **self.client_credentials(),
        }
        response = await self.transport.post_form(self.provider.token_endpoint, data)
        token = _parse_token_response(response) if response.is_success else None
        if token is not None:
            return token

        body = response.text
        logger.warning(
            "Refresh for %s failed with status %s", self.provider.name.value, response.status_code
        )
        if INVALID_GRANT in body:
            raise InvalidGrantError(
                f"Refresh token for {self.provider.name.value} was rejected: {body}",
                provider=self.provider.name.value,
            )
        return None

    async def revoke(self, token: str) -> bool:
        """Ask the provider to revoke *token*.

        Returns:
            ``True`` if the provider accepted the revocation, ``False`` if
            it refused or has no revoke endpoint.

        Raises:
            TransientNetworkError: If the revoke endpoint is unreachable.
        """
        if not self.provider.revoke_endpoint:
            logger.debug("%s has no revoke endpoint, skipping", self.provider.name.value)
            return False
        data = {"token": token, **self.client_credentials()}
        response = await self.transport.post_form(self.provider.revoke_endpoint, data)
        if not response.is_success:
            logger.warning(
                "Revocation at %s failed with status %s",
                self.provider.name.value,
                response.status_code,
            )
            return False
        logger.info("Revoked token at %s", self.provider.name.value)
        return True


class PublicPKCEStrategy(ProviderStrategy):
    """Public client: identified by ``client_id`` alone, secured by PKCE."""


class ConfidentialPKCEStrategy(ProviderStrategy):
    """Confidential client: also sends ``client_secret`` to token endpoints."""

    def client_credentials(self) -> dict[str, str]:
        credentials = super().client_credentials()
        if self.provider.client_secret:
            credentials["client_secret"] = self.provider.client_secret
        return credentials


STRATEGIES: dict[ProviderName, type[ProviderStrategy]] = {
    ProviderName.GOOGLE: PublicPKCEStrategy,
    ProviderName.SPOTIFY: PublicPKCEStrategy,
    ProviderName.FITBIT: PublicPKCEStrategy,
    ProviderName.GITHUB: ConfidentialPKCEStrategy,
}


def get_strategy(provider: ProviderConfig, transport: HttpTransport) -> ProviderStrategy:
    """Instantiate the strategy registered for ``provider.name``."""
    return STRATEGIES[provider.name](provider, transport)
