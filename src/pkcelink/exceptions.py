"""Exception hierarchy for pkcelink.

All exceptions inherit from :class:`PkcelinkError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pkcelink.exit_codes`.
The CLI entry point catches ``PkcelinkError`` and exits with the matching
code.  Library callers use the subclasses to decide between retrying later
and restarting the authorization flow.

Subclass hierarchy::

    PkcelinkError (exit 1)
    +-- ConfigurationError            (exit 2)
    +-- AuthError                     (exit 3)
    |   +-- StateMismatchError
    |   +-- AuthorizationDeniedError
    |   +-- TokenExchangeError
    |   +-- InvalidGrantError
    +-- TransientNetworkError         (exit 6)
"""

from __future__ import annotations

from pkcelink.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
)


class PkcelinkError(Exception):
    """Base exception for all pkcelink errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(PkcelinkError):
    """Raised when a provider descriptor or settings file is missing a required field."""

    exit_code = EXIT_CONFIG_ERROR


class AuthError(PkcelinkError):
    """Raised when authorization fails and the caller has to sign in again."""

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class StateMismatchError(AuthError):
    """Raised by ``validate`` when there is no pending session, the state differs, or the code is empty."""


class AuthorizationDeniedError(AuthError):
    """Raised when the provider redirect carries an ``error`` parameter."""


class TokenExchangeError(AuthError):
    """Raised when the token endpoint rejects an authorization code.

    Args:
        message: Human-readable error description.
        status_code: HTTP status returned by the token endpoint.
        body: Raw response body, kept for diagnostics.
        provider: Name of the provider that rejected the exchange.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        provider: str | None = None,
    ):
        super().__init__(message, provider=provider)
        self.status_code = status_code
        self.body = body


class InvalidGrantError(AuthError):
    """Raised when the provider answers a refresh with ``invalid_grant``.

    The refresh token is permanently dead; the stored record is removed and
    the user must authorize again.
    """


class TransientNetworkError(PkcelinkError):
    """Raised on network-level failures talking to a provider.

    Stored credentials are left untouched so the caller can retry later.
    """

    exit_code = EXIT_CONNECTION_ERROR
