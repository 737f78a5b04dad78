"""Terminal reporting for the pkcelink CLI.

Results go to stdout and nothing else does, so
``TOKEN=$(pkcelink token google)`` captures exactly one line.  Progress
notes, warnings, errors and hints go to stderr.

The provider status table is rendered with Rich on an interactive terminal,
as tab-separated lines when stdout is piped, and as a JSON array with
``--json``.  Colour is switched off by ``NO_COLOR`` (any value),
``TERM=dumb`` or ``--no-color``.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table


class Style(str, Enum):
    """How results are rendered on stdout."""

    AUTO = "auto"
    JSON = "json"
    TEXT = "text"
    RICH = "rich"


@dataclass(frozen=True)
class ProviderStatus:
    """One row of ``pkcelink status``."""

    provider: str
    configured: bool
    signed_in: bool


def color_disabled() -> bool:
    """Return ``True`` when ``NO_COLOR`` is present or the terminal is dumb."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def stdout_is_terminal() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


class Reporter:
    """Write CLI results and diagnostics to the right stream.

    Streams are looked up on every call, so a reporter created before
    ``sys.stdout`` is swapped (as :class:`typer.testing.CliRunner` does)
    still writes to the current one.

    Args:
        style: ``AUTO`` becomes ``RICH`` on a colour-capable terminal and
            ``TEXT`` otherwise.
        no_color: Emit diagnostics without Rich markup.
        quiet: Drop progress notes, success messages and hints.  Warnings
            and errors are always shown.
    """

    def __init__(self, style: Style = Style.AUTO, no_color: bool = False, quiet: bool = False) -> None:
        self.no_color = no_color or color_disabled()
        self.quiet = quiet
        if style == Style.AUTO:
            style = Style.RICH if stdout_is_terminal() and not self.no_color else Style.TEXT
        self.style = style

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def line(self, text: str) -> None:
        """Write *text* and a newline to stdout."""
        sys.stdout.write(text + "\n")
        sys.stdout.flush()

    def token(self, access_token: str) -> None:
        self.line(access_token)

    def statuses(self, rows: Sequence[ProviderStatus]) -> None:
        """Render the provider status table in the active style.

        JSON rows keep ``configured`` and ``signed_in`` as booleans; the
        text and Rich renderings show ``yes`` / ``no``.
        """
        if self.style == Style.JSON:
            self.line(json.dumps([asdict(row) for row in rows], indent=2))
            return

        if self.style == Style.TEXT:
            self.line("provider\tconfigured\tsigned_in")
            for row in rows:
                self.line(f"{row.provider}\t{_yes_no(row.configured)}\t{_yes_no(row.signed_in)}")
            return

        table = Table(title="Providers", header_style="bold cyan")
        table.add_column("Provider")
        table.add_column("Configured")
        table.add_column("Signed in")
        for row in rows:
            table.add_row(
                row.provider,
                _yes_no(row.configured),
                "[green]yes[/green]" if row.signed_in else "[dim]no[/dim]",
            )
        Console(file=sys.stdout, force_terminal=True, no_color=self.no_color).print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def note(self, message: str) -> None:
        if not self.quiet:
            self._stderr(message, message)

    def done(self, message: str) -> None:
        if not self.quiet:
            self._stderr(message, f"[green]{message}[/green]")

    def warn(self, message: str) -> None:
        self._stderr(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def fail(self, message: str) -> None:
        self._stderr(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def hint(self, message: str) -> None:
        if not self.quiet:
            self._stderr(f"→ {message}", f"[dim]→ {message}[/dim]")

    def _stderr(self, plain: str, markup: str) -> None:
        if self.no_color:
            sys.stderr.write(plain + "\n")
            sys.stderr.flush()
        else:
            Console(file=sys.stderr, stderr=True).print(markup, highlight=False)


_reporter: Optional[Reporter] = None


def get_reporter() -> Reporter:
    """Return the reporter installed by the CLI, creating a default one if needed."""
    global _reporter
    if _reporter is None:
        _reporter = Reporter()
    return _reporter


def set_reporter(reporter: Reporter) -> None:
    global _reporter
    _reporter = reporter


def reset_reporter() -> None:
    """Forget the installed reporter (used by tests)."""
    global _reporter
    _reporter = None
