"""OAuth2 Authorization Code + PKCE client with persistent, self-refreshing tokens.

:class:`AuthClient` is the state machine at the centre of pkcelink.  For one
provider it moves between three implicit states:

``NoCredential`` -> ``PendingAuthorization``
    after :meth:`~AuthClient.create_auth_url` stores a fresh
    :class:`~pkcelink.models.AuthSession` (state + code verifier).
``PendingAuthorization`` -> ``Authenticated``
    after :meth:`~AuthClient.validate` exchanges the returned code and writes
    a :class:`~pkcelink.models.TokenRecord` to storage.
``Authenticated`` -> ``NoCredential``
    after :meth:`~AuthClient.deauthenticate`, or when a refresh is answered
    with ``invalid_grant``.

Staleness is evaluated lazily on every read.  A token is refreshed once it is
within :data:`REFRESH_BUFFER_MS` of expiry, so it never runs out mid-request.

Read-path methods (:meth:`~AuthClient.get_auth_token`,
:meth:`~AuthClient.is_authenticated`) never raise; write-path methods
(:meth:`~AuthClient.validate`, :meth:`~AuthClient.authenticate`) raise the
:mod:`pkcelink.exceptions` taxonomy so callers can tell "retry later" from
"restart the flow".

See Also:
    :mod:`pkcelink.auth.strategies` for the provider-facing HTTP calls.
    :mod:`pkcelink.auth.launcher` for interactive sign-in.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Callable, Optional

from pydantic import ValidationError

from pkcelink.auth.launcher import AuthLauncher, parse_redirect
from pkcelink.auth.strategies import ProviderStrategy, get_strategy
from pkcelink.crypto import generate_code_verifier, generate_state
from pkcelink.exceptions import (
    AuthError,
    AuthorizationDeniedError,
    ConfigurationError,
    InvalidGrantError,
    StateMismatchError,
    TransientNetworkError,
)
from pkcelink.models import (
    AuthContext,
    AuthSession,
    ProviderConfig,
    TokenRecord,
    TokenResponse,
    now_ms,
)
from pkcelink.storage.base import StorageAdapter
from pkcelink.storage.memory import MemoryStorage
from pkcelink.transport import HttpTransport

logger = logging.getLogger(__name__)

STORAGE_KEY_PREFIX = "oauth2"
REFRESH_BUFFER_MS = 60_000


class AuthClient:
    """Manage the access credential for one OAuth2 provider.

    Concurrency: one instance serves one logical flow, but its coroutines may
    be awaited concurrently.  Refreshes are single-flight per instance: a
    caller that waited on an in-progress refresh re-reads storage and reuses
    its result.  Only the most recent pending session is honoured by
    :meth:`validate`.  A :meth:`create_auth_url` issued while a
    :meth:`validate` is awaiting the token endpoint starts a new session that
    the in-flight call leaves alone.

    Args:
        provider: Validated provider descriptor.
        redirect_uri: Redirect URI registered with the provider.
        storage: Token store.  Defaults to a fresh
            :class:`~pkcelink.storage.memory.MemoryStorage`.
        transport: HTTP transport.  Defaults to a new
            :class:`~pkcelink.transport.HttpTransport` owned by this client.
        launcher: Optional launcher used by :meth:`authenticate`.
        clock: Callable returning the current time in ms since the epoch.

    Raises:
        ConfigurationError: If *redirect_uri* is empty.

    Example::

        client = AuthClient(get_provider_config("spotify"), "http://127.0.0.1:8765/callback")
        url = client.create_auth_url()
        # ... user approves, redirect delivers code + state ...
        await client.validate(code, state)
        token = await client.get_auth_token()
    """

    def __init__(
        self,
        provider: ProviderConfig,
        redirect_uri: str,
        storage: Optional[StorageAdapter] = None,
        transport: Optional[HttpTransport] = None,
        launcher: Optional[AuthLauncher] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        if not redirect_uri:
            raise ConfigurationError(f"A redirect URI is required for provider '{provider.name.value}'")
        self._provider = provider
        self._redirect_uri = redirect_uri
        self._storage = storage if storage is not None else MemoryStorage()
        self._owns_transport = transport is None
        self._transport = transport if transport is not None else HttpTransport()
        self._launcher = launcher
        self._clock = clock or now_ms
        self._strategy: ProviderStrategy = get_strategy(provider, self._transport)
        self._session: Optional[AuthSession] = None
        self._refresh_lock = asyncio.Lock()

    async def __aenter__(self) -> AuthClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the transport if this client created it."""
        if self._owns_transport:
            await self._transport.aclose()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def provider(self) -> ProviderConfig:
        return self._provider

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    @property
    def storage_key(self) -> str:
        """Key of this provider's :class:`~pkcelink.models.TokenRecord` in storage."""
        return f"{STORAGE_KEY_PREFIX}.{self._provider.name.value}"

    # ------------------------------------------------------------------ #
    # Authorization
    # ------------------------------------------------------------------ #

    def create_auth_url(self) -> str:
        """Start an authorization and return the URL to send the user to.

        Generates a new ``state`` and code verifier, replacing any pending
        session: only the latest URL can be completed with :meth:`validate`.
        """
        if self._session is not None:
            logger.debug("Replacing pending %s authorization", self._provider.name.value)
        session = AuthSession(state=generate_state(), code_verifier=generate_code_verifier())
        self._session = session
        return self._strategy.create_authorization_url(session, self._redirect_uri)

    def get_context(self) -> AuthContext:
        """Return the pending ``state`` and code verifier (``None`` when idle)."""
        if self._session is None:
            return AuthContext()
        return AuthContext(state=self._session.state, code_verifier=self._session.code_verifier)

    async def validate(self, code: str, state: str) -> TokenRecord:
        """Complete the pending authorization with the code the provider returned.

        The pending session is consumed by this call whatever its outcome,
        so a rejected or failed validation requires a new
        :meth:`create_auth_url`.

        Args:
            code: The ``code`` query parameter of the redirect.
            state: The ``state`` query parameter of the redirect.

        Returns:
            The :class:`~pkcelink.models.TokenRecord` that was stored.

        Raises:
            StateMismatchError: If no authorization is pending, *state* does
                not match, or *code* is empty.
            TokenExchangeError: If the token endpoint rejects the code.
            TransientNetworkError: If the token endpoint is unreachable.
        """
        session = self._session
        self._session = None
        name = self._provider.name.value

        if session is None:
            raise StateMismatchError(f"No pending {name} authorization to validate", provider=name)
        if not state or not secrets.compare_digest(state, session.state):
            raise StateMismatchError(f"State mismatch in {name} authorization response", provider=name)
        if not code:
            raise StateMismatchError(f"No authorization code in {name} response", provider=name)

        token = await self._strategy.exchange_code(code, session.code_verifier, self._redirect_uri)
        record = TokenRecord.from_response(token, issued_at=self._clock())
        self._write_record(record)
        logger.info("Stored new %s credential", name)
        return record

    async def authenticate(self) -> bool:
        """Return ``True`` once a usable token exists, signing in if needed.

        Uses the injected launcher to take the user through the consent
        screen, then validates the redirect it returns.

        Raises:
            AuthError: If sign-in is needed but no launcher was configured,
                or any step of the interactive flow fails.
            TransientNetworkError: If the token endpoint is unreachable.
        """
        if await self.get_auth_token():
            return True

        name = self._provider.name.value
        if self._launcher is None:
            raise AuthError(f"Signing in to {name} requires an interactive launcher", provider=name)

        auth_url = self.create_auth_url()
        redirect_url = await self._launcher.launch(auth_url, self._redirect_uri)
        try:
            code, state = parse_redirect(redirect_url)
        except AuthorizationDeniedError as exc:
            self._session = None
            exc.provider = name
            raise
        await self.validate(code, state)
        return True

    # ------------------------------------------------------------------ #
    # Token access
    # ------------------------------------------------------------------ #

    async def get_auth_token(self, interactive: bool = False) -> Optional[str]:
        """Return a usable access token, refreshing it first if it is about to expire.

        Never raises: storage and network failures degrade to ``None``.
        This method never blocks on user interaction.  With *interactive*
        set it only logs that the caller has to start a sign-in through
        :meth:`create_auth_url` / :meth:`validate` or :meth:`authenticate`.

        Args:
            interactive: Whether the caller is able to sign the user in.

        Returns:
            The access token, or ``None`` if there is no usable credential.
        """
        try:
            token = await self._get_token_from_store_or_refresh()
        except Exception as exc:
            logger.warning("Could not load %s credential: %s", self._provider.name.value, exc)
            token = None

        if token is None and interactive:
            logger.info(
                "No usable %s token; an interactive authorization is required",
                self._provider.name.value,
            )
        return token

    async def is_authenticated(self) -> bool:
        """Return ``True`` if :meth:`get_auth_token` yields a token.  Never raises."""
        try:
            return bool(await self.get_auth_token())
        except Exception as exc:
            logger.warning("Authentication check for %s failed: %s", self._provider.name.value, exc)
            return False

    async def refresh_access_token(self, refresh_token: str) -> Optional[TokenResponse]:
        """Trade *refresh_token* for a new access token.

        Returns:
            The token response, or ``None`` on a failure worth retrying later.

        Raises:
            InvalidGrantError: If the refresh token was revoked or expired.
            TransientNetworkError: If the token endpoint is unreachable.
        """
        logger.debug("Refreshing %s access token", self._provider.name.value)
        return await self._strategy.refresh(refresh_token)

    async def deauthenticate(self) -> bool:
        """Sign out: revoke the token at the provider and delete it locally.

        Revocation is best-effort; its failures are logged and never raised.
        The local record is removed unconditionally.

        Returns:
            Always ``True``.
        """
        name = self._provider.name.value
        logger.info("Signing out of %s", name)
        try:
            record = self._read_record()
            if record is not None:
                await self._strategy.revoke(record.access_token)
        except Exception as exc:
            logger.warning("Could not revoke %s token: %s", name, exc)
        finally:
            self._storage.remove(self.storage_key)
        return True

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _get_token_from_store_or_refresh(self) -> Optional[str]:
        record = self._read_record()
        if record is None:
            return None
        if not record.is_expired(self._clock(), REFRESH_BUFFER_MS):
            return record.access_token

        if record.refresh_token:
            async with self._refresh_lock:
                record = await self._refresh_locked()
            if record is None:
                return None
            if not record.is_expired(self._clock(), REFRESH_BUFFER_MS):
                return record.access_token

        # Refresh impossible or postponed: the old token is fine until it really expires.
        if record.is_expired(self._clock()):
            return None
        return record.access_token

    async def _refresh_locked(self) -> Optional[TokenRecord]:
        """Refresh the stored record unless a concurrent caller already did.

        Must be called with ``_refresh_lock`` held.  Returns the current
        record (refreshed or not), or ``None`` if it was removed.
        """
        record = self._read_record()
        if record is None or not record.refresh_token:
            return record
        if not record.is_expired(self._clock(), REFRESH_BUFFER_MS):
            return record

        name = self._provider.name.value
        try:
            token = await self.refresh_access_token(record.refresh_token)
        except InvalidGrantError:
            logger.warning("%s refresh token is no longer valid; removing stored credential", name)
            self._storage.remove(self.storage_key)
            return None
        except TransientNetworkError as exc:
            logger.warning("Could not reach %s to refresh token: %s", name, exc)
            return record

        if token is None:
            return record

        refreshed = TokenRecord.from_response(
            token,
            issued_at=self._clock(),
            fallback_refresh_token=record.refresh_token,
        )
        self._write_record(refreshed)
        logger.info("Refreshed %s access token", name)
        return refreshed

    def _read_record(self) -> Optional[TokenRecord]:
        data = self._storage.get(self.storage_key)
        if data is None:
            return None
        try:
            return TokenRecord.model_validate(data)
        except ValidationError as exc:
            logger.warning("Ignoring malformed %s record: %s", self.storage_key, exc)
            return None

    def _write_record(self, record: TokenRecord) -> None:
        self._storage.set(self.storage_key, record.model_dump(mode="json"))
