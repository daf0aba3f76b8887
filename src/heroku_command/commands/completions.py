"""Completion command -- print the values of a completion provider.

Shell completion scripts call this to fill in option values::

    heroku-command completions apps
    heroku-command completions dynos --app myapp
"""

from __future__ import annotations

from typing import Optional

import typer

from heroku_command.cache import CompletionCache
from heroku_command.client import create_client
from heroku_command.commands import run
from heroku_command.completions import COMPLETIONS, CompletionContext, complete
from heroku_command.config import get_cache_dir
from heroku_command.output import print_data


def completions_command(
    name: str = typer.Argument(help=f"Provider: {', '.join(sorted(COMPLETIONS))}."),
    app: Optional[str] = typer.Option(None, "--app", "-a", help="App for app-scoped values."),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Fetch fresh values and replace the cached ones."
    ),
) -> None:
    """Print one completion value per line."""

    async def _complete() -> list[str]:
        async with create_client() as client:
            ctx = CompletionContext(client=client, app=app)
            with CompletionCache(get_cache_dir(), client.vars.api_url) as cache:
                return await complete(name, ctx, cache=cache, refresh=no_cache)

    for value in run(_complete()):
        print_data(value)
