"""Root Typer application and the ``heroku-command`` console script.

The commands themselves live in :mod:`heroku_command.commands`; this
module only registers them, handles the global ``--version``,
``--no-color``, ``--quiet`` and ``--verbose`` options, and turns uncaught
exceptions into exit codes in :func:`main`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any

import typer

from heroku_command import __version__
from heroku_command.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="heroku-command",
    help="Log in to the Heroku Platform API and inspect the stored credential.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from heroku_command.commands.auth import (  # noqa: E402
    login_command,
    logout_command,
    token_command,
    whoami_command,
)
from heroku_command.commands.completions import completions_command  # noqa: E402

app.command("login")(login_command)
app.command("logout")(logout_command)
app.command("whoami")(whoami_command)
app.command("token")(token_command)
app.command("completions")(completions_command)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"heroku-command {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Print without colour."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only print warnings, errors and data."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Trace requests and login steps on stderr."
    ),
) -> None:
    """Install the output manager and logging for this invocation.

    The flags are also kept in ``ctx.obj`` for commands that need them.
    """
    from heroku_command.output import OutputManager, configure_logging, set_output

    set_output(OutputManager(no_color=no_color, quiet=quiet, verbose=verbose))
    configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj.update(verbose=verbose, quiet=quiet, no_color=no_color)


def _setup_signal_handlers() -> None:
    """Exit with :data:`EXIT_INTERRUPTED` on Ctrl-C instead of a traceback."""

    def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log(exc: Exception) -> Path:
    """Save the traceback of *exc* under ``<data_dir>/logs`` and return the file."""
    from heroku_command.config import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return log_path


def main() -> None:
    """Entry point of the ``heroku-command`` console script.

    A :class:`~heroku_command.exceptions.HerokuError` that escapes a
    command is printed and exits with its ``exit_code``. Any other
    exception is written to a crash log and exits with
    :data:`~heroku_command.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    from heroku_command.exceptions import HerokuError
    from heroku_command.output import error

    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except HerokuError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Debug log: {_write_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
