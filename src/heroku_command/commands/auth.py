"""Auth commands -- log in, log out and inspect the current credential.

Typical workflow::

    heroku-command login -i        # email and password
    heroku-command whoami          # prints the account email
    heroku-command token           # prints the bearer token for scripts
    heroku-command logout
"""

from __future__ import annotations

from typing import Optional

import typer

from heroku_command.auth.login import Login
from heroku_command.client import APIClient, create_client
from heroku_command.commands import run
from heroku_command.exceptions import AuthError, InvalidUsageError
from heroku_command.models import Account, LoginMethod, LoginOptions
from heroku_command.output import get_output, print_data, success


def _method(interactive: bool, browser: bool, sso: bool) -> Optional[LoginMethod]:
    chosen: list[LoginMethod] = []
    if interactive:
        chosen.append("interactive")
    if browser:
        chosen.append("browser")
    if sso:
        chosen.append("sso")
    if len(chosen) > 1:
        raise InvalidUsageError("--interactive, --browser and --sso are mutually exclusive")
    return chosen[0] if chosen else None


def _require_token(client: APIClient) -> str:
    token = client.auth
    if not token:
        raise AuthError("not logged in")
    return token


def login_command(
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Log in with email and password."
    ),
    browser: bool = typer.Option(False, "--browser", help="Log in through the browser."),
    sso: bool = typer.Option(False, "--sso", help="Log in with single sign-on."),
    expires_in: Optional[int] = typer.Option(
        None,
        "--expires-in",
        "-e",
        min=1,
        help="Seconds until the token expires (interactive login only).",
    ),
) -> None:
    """Log in and store the credential in ~/.netrc.

    Without a method flag the saved method (or ``interactive``) is used.

    Example::

        heroku-command login --interactive --expires-in 3600
    """

    async def _login() -> str:
        options = LoginOptions(
            method=_method(interactive, browser, sso), expires_in=expires_in
        )
        async with create_client() as client:
            login = Login(client)
            await login.login(options)
            entry = login.store.get(client.vars.api_host)
            return entry.login if entry is not None and entry.login else "unknown"

    email = run(_login())
    success(f"Logged in as {email}")


def logout_command() -> None:
    """Revoke the current credential and remove it from ~/.netrc."""

    async def _logout() -> None:
        async with create_client() as client:
            with get_output().action("Logging out"):
                await Login(client).logout()

    run(_logout())


def whoami_command() -> None:
    """Print the email of the logged-in account."""

    async def _whoami() -> str:
        async with create_client() as client:
            _require_token(client)
            response = await client.get("/account")
            return Account.model_validate(response.body).email

    print_data(run(_whoami()))


def token_command() -> None:
    """Print the current bearer token."""

    async def _token() -> str:
        async with create_client() as client:
            return _require_token(client)

    print_data(run(_token()))
