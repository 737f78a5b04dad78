"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~pkcelink.exceptions.PkcelinkError` subclass.
Shell wrappers can inspect the exit code to tell "sign in again" apart from
"try again later" without parsing stderr.

Example::

    $ pkcelink token spotify
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- no usable credential, run `pkcelink login`
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIG_ERROR = 2
"""Provider or application configuration is missing or invalid."""

EXIT_AUTH_FAILURE = 3
"""Authorization failed or must be restarted interactively."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
