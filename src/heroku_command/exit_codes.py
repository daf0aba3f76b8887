"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~heroku_command.exceptions.HerokuError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login apart
from a malformed invocation without parsing stderr.

Example::

    $ heroku-command whoami
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- not logged in, or the token was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred, including structured API errors."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required values."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed, login was aborted, or no credential is available."""

EXIT_INTERRUPTED = 130
"""The user cancelled with Ctrl-C."""
