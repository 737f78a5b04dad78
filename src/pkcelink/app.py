"""Typer application and CLI entry point for pkcelink.

Commands:

* ``login PROVIDER`` -- sign in through the browser (or ``--no-browser``
  for copy/paste) and store the tokens.
* ``logout PROVIDER`` -- revoke and delete the stored tokens.
* ``configure PROVIDER`` -- save the credential and scope sources
  for PROVIDER in ``config.json``.
* ``status [PROVIDER]`` -- show which providers are configured and signed in.
* ``token PROVIDER`` -- print a valid access token to stdout, refreshing it
  first if needed.

:class:`~pkcelink.exceptions.PkcelinkError` failures are printed to stderr
and mapped to the exit code carried by the exception.

See Also:
    :mod:`pkcelink.config`: Settings and credential resolution.
    :mod:`pkcelink.output`: Reporter installed in :func:`main_callback`.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any, Callable, Coroutine, Optional, TypeVar

import typer

from pkcelink import __version__
from pkcelink.auth import AuthClient, AuthLauncher, LocalServerLauncher, ManualLauncher
from pkcelink.config import load_settings, save_settings
from pkcelink.exceptions import ConfigurationError, PkcelinkError
from pkcelink.exit_codes import EXIT_AUTH_FAILURE, EXIT_CONFIG_ERROR
from pkcelink.output import ProviderStatus, Reporter, Style, get_reporter, set_reporter
from pkcelink.providers import get_provider_config, list_providers
from pkcelink.storage import create_storage

T = TypeVar("T")

app = typer.Typer(
    name="pkcelink",
    help="Sign in to OAuth2 providers with PKCE and keep the tokens fresh.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pkcelink {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Install the reporter and logging configuration for every command."""
    style = Style.JSON if json_output else Style.AUTO
    set_reporter(Reporter(style=style, no_color=no_color, quiet=quiet))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _build_client(provider_name: str, launcher: Optional[AuthLauncher] = None) -> AuthClient:
    """Create an :class:`AuthClient` for *provider_name* from the effective settings."""
    settings = load_settings()
    provider = get_provider_config(provider_name, settings)
    return AuthClient(
        provider,
        settings.redirect_uri,
        storage=create_storage(settings),
        launcher=launcher,
    )


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro*, turning :class:`PkcelinkError` into a clean exit."""
    try:
        return asyncio.run(coro)
    except PkcelinkError as exc:
        get_reporter().fail(str(exc))
        raise typer.Exit(exc.exit_code)


def _run_sync(factory: Callable[[], T]) -> T:
    """Call *factory*, turning :class:`PkcelinkError` into a clean exit."""
    try:
        return factory()
    except PkcelinkError as exc:
        get_reporter().fail(str(exc))
        raise typer.Exit(exc.exit_code)


async def _with_client(client: AuthClient, action: Callable[[AuthClient], Any]) -> Any:
    async with client:
        return await action(client)


@app.command()
def login(
    provider: str = typer.Argument(..., help="Provider name, e.g. google or spotify."),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the URL and paste the redirect back instead."
    ),
    timeout: float = typer.Option(120.0, "--timeout", help="Seconds to wait for the browser callback."),
) -> None:
    """Sign in to PROVIDER and store the issued tokens."""
    launcher: AuthLauncher = ManualLauncher() if no_browser else LocalServerLauncher(timeout=timeout)
    client = _run_sync(lambda: _build_client(provider, launcher))
    if not no_browser:
        get_reporter().note("Opening the browser for authorization...")
    _run(_with_client(client, lambda c: c.authenticate()))
    get_reporter().done(f"Signed in to {provider}.")


@app.command()
def logout(provider: str = typer.Argument(..., help="Provider name.")) -> None:
    """Revoke and forget the tokens stored for PROVIDER."""
    client = _run_sync(lambda: _build_client(provider))
    _run(_with_client(client, lambda c: c.deauthenticate()))
    get_reporter().done(f"Signed out of {provider}.")


@app.command()
def configure(
    provider: str = typer.Argument(..., help="Provider name."),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", help="Client id source: env:NAME, file:/path or the literal id."
    ),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", help="Client secret source (confidential providers only)."
    ),
    scopes: Optional[str] = typer.Option(
        None, "--scopes", help="Space-separated scopes replacing the provider defaults."
    ),
) -> None:
    """Save where PROVIDER's credentials come from in config.json."""
    if provider not in list_providers():
        get_reporter().fail(f"Unknown provider '{provider}'. Available: {', '.join(list_providers())}")
        raise typer.Exit(EXIT_CONFIG_ERROR)

    updates: dict[str, Any] = {}
    if client_id is not None:
        updates["client_id_source"] = client_id
    if client_secret is not None:
        updates["client_secret_source"] = client_secret
    if scopes is not None:
        updates["scopes"] = scopes.split()

    settings = _run_sync(lambda: load_settings(env_overrides=False))
    settings.providers[provider] = settings.provider(provider).model_copy(update=updates)
    save_settings(settings)

    try:
        get_provider_config(provider, load_settings())
    except ConfigurationError as exc:
        get_reporter().warn(f"Saved, but {provider} is not usable yet: {exc}")
        return
    get_reporter().done(f"Configured {provider}.")


@app.command()
def token(provider: str = typer.Argument(..., help="Provider name.")) -> None:
    """Print a valid access token for PROVIDER to stdout."""
    client = _run_sync(lambda: _build_client(provider))
    access_token = _run(_with_client(client, lambda c: c.get_auth_token()))
    if not access_token:
        get_reporter().fail(f"Not signed in to {provider}.")
        get_reporter().hint(f"Run: pkcelink login {provider}")
        raise typer.Exit(EXIT_AUTH_FAILURE)
    get_reporter().token(access_token)


@app.command()
def status(
    provider: Optional[str] = typer.Argument(None, help="Only show this provider."),
) -> None:
    """Show configuration and sign-in state of each provider."""
    names = [provider] if provider else list_providers()
    rows: list[ProviderStatus] = []
    for name in names:
        try:
            client = _build_client(name)
        except ConfigurationError as exc:
            if provider:
                get_reporter().fail(str(exc))
                raise typer.Exit(exc.exit_code)
            rows.append(ProviderStatus(name, configured=False, signed_in=False))
            continue
        signed_in = _run(_with_client(client, lambda c: c.is_authenticated()))
        rows.append(ProviderStatus(name, configured=True, signed_in=signed_in))
    get_reporter().statuses(rows)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``pkcelink`` console script."""
    _setup_signal_handlers()
    app()
