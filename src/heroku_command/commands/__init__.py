"""Built-in CLI commands for heroku_command.

* :mod:`~heroku_command.commands.auth` -- ``login``, ``logout``,
  ``whoami`` and ``token``.
* :mod:`~heroku_command.commands.completions` -- ``completions``, which
  prints the values of a completion provider.

Each module exports plain callback functions that
:mod:`heroku_command.app` registers directly on the root application.
Commands run their async work with :func:`run`, which turns
:class:`~heroku_command.exceptions.HerokuError` into a clean exit.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

import typer

from heroku_command.client.transport import HTTPError
from heroku_command.exceptions import HerokuError
from heroku_command.exit_codes import EXIT_GENERIC_FAILURE
from heroku_command.output import error

T = TypeVar("T")


def run(coro: Awaitable[T]) -> T:
    """Run *coro* to completion, reporting package errors on stderr.

    Raises:
        typer.Exit: With the error's exit code on failure.
    """
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except HerokuError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except HTTPError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_GENERIC_FAILURE) from None
