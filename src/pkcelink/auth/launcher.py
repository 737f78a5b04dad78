"""Launchers drive the user through the provider consent screen.

The :class:`~pkcelink.auth.client.AuthClient` never opens browsers or
listens on sockets itself.  Interactive sign-in is delegated to an
:class:`AuthLauncher` injected at construction:

- :class:`LocalServerLauncher` opens the system browser and captures the
  redirect on a one-shot local HTTP server (desktop terminals).
- :class:`ManualLauncher` prints the URL and asks the user to paste the
  redirect URL back (SSH sessions, containers).

Both return the full redirect URL; :func:`parse_redirect` extracts the
``code`` and ``state`` from it.
"""

from __future__ import annotations

import asyncio
import logging
import time
import webbrowser
from abc import ABC, abstractmethod
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlsplit

import typer

from pkcelink.exceptions import AuthError, AuthorizationDeniedError

logger = logging.getLogger(__name__)

DEFAULT_CALLBACK_TIMEOUT = 120.0


def parse_redirect(redirect_url: str) -> tuple[str, str]:
    """Return ``(code, state)`` from a provider redirect URL.

    Missing parameters come back as empty strings so that
    :meth:`~pkcelink.auth.client.AuthClient.validate` reports them.

    Raises:
        AuthorizationDeniedError: If the redirect carries an ``error``.
    """
    params = parse_qs(urlsplit(redirect_url).query)
    if "error" in params:
        error = params["error"][0]
        description = params.get("error_description", [""])[0]
        message = f"Authorization failed: {error}"
        if description:
            message += f" - {description}"
        raise AuthorizationDeniedError(message)
    code = params.get("code", [""])[0]
    state = params.get("state", [""])[0]
    return code, state


class AuthLauncher(ABC):
    """Takes the user to an authorization URL and returns the redirect URL."""

    @abstractmethod
    async def launch(self, auth_url: str, redirect_uri: str) -> str:
        """Present *auth_url* and wait for the provider to redirect to *redirect_uri*.

        Returns:
            The full redirect URL, including its query string.

        Raises:
            AuthError: If no redirect was received.
        """
        ...


class LocalServerLauncher(AuthLauncher):
    """Open the browser and capture the redirect on a local HTTP server.

    The server binds the host and port of the redirect URI, so the URI must
    point at the loopback interface (e.g. ``http://127.0.0.1:8765/callback``)
    and be registered with the provider.  Requests to other paths (browsers
    like to ask for ``/favicon.ico``) get a 404 and are ignored.

    Args:
        timeout: Seconds to wait for the redirect.
        open_browser: Callable used to open the URL; defaults to
            :func:`webbrowser.open`.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_CALLBACK_TIMEOUT,
        open_browser: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._timeout = timeout
        self._open_browser = open_browser or webbrowser.open

    async def launch(self, auth_url: str, redirect_uri: str) -> str:
        parts = urlsplit(redirect_uri)
        if parts.scheme != "http" or not parts.hostname or not parts.port:
            raise AuthError(
                f"Redirect URI {redirect_uri!r} must be http://<host>:<port>/... "
                "to receive the callback locally"
            )
        server = self._create_server(parts.hostname, parts.port, parts.path or "/")
        try:
            self._open_browser(auth_url)
            logger.info("Waiting for authorization callback on %s", redirect_uri)
            path = await asyncio.to_thread(self._wait_for_callback, server)
        finally:
            server.server_close()
        return f"{parts.scheme}://{parts.netloc}{path}"

    def _create_server(self, host: str, port: int, callback_path: str) -> HTTPServer:
        """Build a single-purpose server that records the first callback request."""

        class CallbackHandler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                if urlsplit(self.path).path != callback_path:
                    self.send_response(404)
                    self.end_headers()
                    return

                params = parse_qs(urlsplit(self.path).query)
                if "error" in params:
                    body = f"Authorization failed: {params['error'][0]}"
                else:
                    body = (
                        "Authorization complete! You can close this window "
                        "and return to the terminal."
                    )
                self.server.callback_path = self.path  # type: ignore[attr-defined]

                self.send_response(200)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                self.wfile.write(f"<html><body><h2>{body}</h2></body></html>".encode("utf-8"))

            def log_message(self, format: str, *args: Any) -> None:
                logger.debug("callback server: " + format, *args)

        server = HTTPServer((host, port), CallbackHandler)
        server.callback_path = None  # type: ignore[attr-defined]
        return server

    def _wait_for_callback(self, server: HTTPServer) -> str:
        deadline = time.monotonic() + self._timeout
        while server.callback_path is None:  # type: ignore[attr-defined]
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise AuthError(
                    f"No authorization callback received within {self._timeout:.0f} seconds"
                )
            server.timeout = remaining
            server.handle_request()
        return server.callback_path  # type: ignore[attr-defined]


class ManualLauncher(AuthLauncher):
    """Print the authorization URL and prompt for the redirect URL.

    Args:
        prompt: Callable used to ask for input; defaults to :func:`typer.prompt`.
        echo: Callable used to show the URL; defaults to :func:`typer.echo`
            writing to stderr.
    """

    def __init__(
        self,
        prompt: Optional[Callable[[str], str]] = None,
        echo: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._prompt = prompt or typer.prompt
        self._echo = echo or (lambda message: typer.echo(message, err=True))

    async def launch(self, auth_url: str, redirect_uri: str) -> str:
        self._echo("Open this URL in a browser and approve access:")
        self._echo(f"\n    {auth_url}\n")
        self._echo(f"You will be redirected to {redirect_uri}?code=...")
        redirect_url = await asyncio.to_thread(self._prompt, "Paste the full redirect URL")
        redirect_url = redirect_url.strip()
        if not redirect_url:
            raise AuthError("No redirect URL entered")
        return redirect_url
