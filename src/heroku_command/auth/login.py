"""Login negotiation -- acquire a fresh credential and persist it.

:class:`Login` drives one of three strategies:

* ``browser`` -- the CLI login service hands out a browser URL and a
  polling URL; the user finishes in the browser while the CLI waits.
* ``interactive`` -- email and password (plus a two-factor code when the
  account requires one) exchanged for a new OAuth authorization.
* ``sso`` -- the user signs in through their organisation's identity
  provider and pastes the resulting access token.

Before a new credential is acquired the previous one is revoked through
:class:`~heroku_command.auth.session.SessionTeardown`. A failed revocation
only prints a warning. On success the credential is written to the netrc
store under both the API host and the HTTP git host, the chosen method is
remembered in ``login.json``, and the client's resolver switches to the new
token.

The whole negotiation is bounded by :data:`LOGIN_TIMEOUT`.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import os
import socket
from typing import Mapping, Optional
from urllib.parse import quote

from heroku_command.auth.credential_store import NetrcEntry, NetrcStore
from heroku_command.auth.session import SessionTeardown, bearer_headers
from heroku_command.browser import open_url_async
from heroku_command.client.api_client import APIClient
from heroku_command.client.transport import HTTPError
from heroku_command.config import (
    ACCEPT,
    TWO_FACTOR_HEADER,
    HerokuVars,
    load_login_settings,
    save_login_settings,
)
from heroku_command.exceptions import (
    APIError,
    ConfigError,
    EnvironmentConflictError,
    HerokuError,
    LoginError,
    LoginTimeoutError,
)
from heroku_command.models import (
    Account,
    APIErrorBody,
    BrowserLoginResult,
    LoginMethod,
    LoginOptions,
    LoginSettings,
    LoginURLs,
    OAuthAuthorization,
)
from heroku_command.output import get_output

logger = logging.getLogger(__name__)

LOGIN_TIMEOUT = 10 * 60.0
"""Seconds before an unfinished login fails with :class:`LoginTimeoutError`."""

MAX_METHOD_ATTEMPTS = 3
"""How many times an unrecognised method answer is asked again."""

DEFAULT_TOKEN_LIFETIME = 60 * 60 * 24 * 365
"""Lifetime of interactive tokens when no ``expires_in`` is given (one year)."""

METHOD_PROMPT = "heroku: Login with [b]rowser, [i]nteractive, or [s]so (enterprise-only)"

_METHOD_ALIASES: dict[str, LoginMethod] = {
    "b": "browser",
    "browser": "browser",
    "i": "interactive",
    "interactive": "interactive",
    "s": "sso",
    "sso": "sso",
}


def _basic_auth(username: str, password: str) -> str:
    raw = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


class Login:
    """Log in and out of the platform on behalf of an :class:`APIClient`.

    The login writes to the client's credential store and sets the
    client's in-memory credential, so requests made through *client*
    afterwards use the new token.

    Args:
        client: The client whose transport, prompter and resolver are used.
        env: Environment mapping for ``HEROKU_ORGANIZATION`` (default:
            ``os.environ``).
        timeout: Seconds allowed for a whole login.

    Example::

        async with create_client() as heroku:
            await Login(heroku).login(LoginOptions(method="interactive"))
    """

    def __init__(
        self,
        client: APIClient,
        *,
        env: Optional[Mapping[str, str]] = None,
        timeout: float = LOGIN_TIMEOUT,
    ) -> None:
        self._client = client
        self._env = os.environ if env is None else env
        self._timeout = timeout
        self.settings = LoginSettings()

    @property
    def vars(self) -> HerokuVars:
        return self._client.vars

    @property
    def store(self) -> NetrcStore:
        return self._client.resolver.store

    @property
    def teardown(self) -> SessionTeardown:
        return SessionTeardown(self._client.transport, self.vars, self._client.resolver)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    async def login(self, options: Optional[LoginOptions] = None) -> None:
        """Run the login negotiation.

        Args:
            options: Forced method, token lifetime and browser choice.

        Raises:
            EnvironmentConflictError: If ``HEROKU_API_KEY`` is set.
            LoginTimeoutError: If the login does not finish in time.
            APIError: For API errors carrying a message.
            HTTPError: For API errors without a message.
            LoginError: For every other failure.
        """
        options = options or LoginOptions()
        try:
            await asyncio.wait_for(self._negotiate(options), self._timeout)
        except asyncio.TimeoutError as exc:
            raise LoginTimeoutError("timed out") from exc
        except HerokuError:
            raise
        except HTTPError as err:
            raise APIError.from_http_error(err) from err
        except Exception as exc:
            raise LoginError(str(exc) or type(exc).__name__) from exc

    async def _negotiate(self, options: LoginOptions) -> None:
        # The deadline cancels this coroutine; any TimeoutError seen here came
        # from a strategy.
        try:
            await self._login(options)
        except asyncio.TimeoutError as exc:
            raise LoginError(str(exc) or "timed out waiting for the login service") from exc

    async def _login(self, options: LoginOptions) -> None:
        self.settings = self._load_settings()

        if self._client.resolver.api_key_from_env():
            raise EnvironmentConflictError("Cannot log in with HEROKU_API_KEY set")

        store = self.store.load()
        previous = store.get(self.vars.api_host)

        method = await self._select_method(options)

        if previous is not None and previous.password:
            await self._revoke_previous(previous.password)

        if method == "browser":
            entry = await self._browser(options.browser)
        elif method == "sso":
            entry = await self._sso(options.browser)
        else:
            entry = await self._interactive(
                previous.login if previous is not None else None,
                options.expires_in,
            )

        self._save_token(entry)
        self.settings.method = method
        self._save_settings()
        self._client.auth = entry.password
        logger.debug("logged in as %s with %s login", entry.login, method)

    async def _select_method(self, options: LoginOptions) -> LoginMethod:
        if options.method:
            return options.method
        if options.expires_in:
            # Browser and SSO tokens have a fixed lifetime.
            return "interactive"

        default = self.settings.method or "interactive"
        answer = default
        for _ in range(MAX_METHOD_ATTEMPTS):
            if self.vars.login_host_override:
                answer = await self._client.prompter.ask(METHOD_PROMPT, default=default)
            method = _METHOD_ALIASES.get(answer.strip().lower())
            if method is not None:
                return method
            logger.debug("unrecognised login method %r", answer)
        raise LoginError(f"Unknown login method: {answer}")

    async def _revoke_previous(self, token: str) -> None:
        try:
            await self.teardown.logout(token)
        except Exception as exc:
            logger.debug("revoking previous credential failed", exc_info=True)
            get_output().warning(str(exc))

    # ------------------------------------------------------------------ #
    # Strategies
    # ------------------------------------------------------------------ #

    async def _browser(self, browser: Optional[str]) -> NetrcEntry:
        transport = self._client.transport
        login_host = self.vars.login_host

        response = await transport.request("POST", f"{login_host}/auth")
        urls = LoginURLs.model_validate(response.body)
        url = f"{login_host}{urls.browser_url}"

        logger.debug("opening browser to %s", url)
        opened = await open_url_async(url, browser)
        if self.vars.headless_login or not opened:
            get_output().warning(
                f"Cannot open browser. Go to {url} to finish login "
                "or run heroku login --interactive"
            )

        with get_output().action("Waiting for login"):
            response = await transport.request(
                "GET",
                f"{login_host}{urls.cli_url}",
                headers={"authorization": f"Bearer {urls.token}"},
                timeout=self._timeout,
            )
        result = BrowserLoginResult.model_validate(response.body)
        if result.error:
            raise LoginError(result.error)
        if not result.access_token:
            raise LoginError("The login service did not return an access token")

        with get_output().action("Logging in"):
            account = await self._account(result.access_token)
        return NetrcEntry(login=account.email, password=result.access_token)

    async def _interactive(
        self, login: Optional[str], expires_in: Optional[int]
    ) -> NetrcEntry:
        prompter = self._client.prompter
        get_output().info("heroku: Enter your login credentials")
        email = await prompter.ask("Email", default=login)
        password = await prompter.ask("Password", mask=True)

        try:
            return await self._create_oauth_token(email, password, expires_in)
        except HTTPError as err:
            if APIErrorBody.from_raw(err.body).id != "two_factor":
                raise
        factor = await prompter.ask("Two-factor code", mask=True)
        return await self._create_oauth_token(email, password, expires_in, factor)

    async def _create_oauth_token(
        self,
        username: str,
        password: str,
        expires_in: Optional[int],
        second_factor: Optional[str] = None,
    ) -> NetrcEntry:
        headers = {"accept": ACCEPT, "authorization": _basic_auth(username, password)}
        if second_factor:
            headers[TWO_FACTOR_HEADER] = second_factor

        response = await self._client.transport.request(
            "POST",
            f"{self.vars.api_url}/oauth/authorizations",
            headers=headers,
            body={
                "scope": ["global"],
                "description": f"Heroku CLI login from {socket.gethostname()}",
                "expires_in": expires_in or DEFAULT_TOKEN_LIFETIME,
            },
        )
        authorization = OAuthAuthorization.model_validate(response.body)
        token = authorization.access_token.token if authorization.access_token else None
        email = authorization.user.email if authorization.user else None
        if not token or not email:
            raise LoginError("The authorization response did not include a token")
        return NetrcEntry(login=email, password=token)

    async def _sso(self, browser: Optional[str]) -> NetrcEntry:
        prompter = self._client.prompter
        url = self.vars.sso_url
        org = self._env.get("HEROKU_ORGANIZATION") or self.settings.org
        if not url:
            org = await prompter.ask("Organization name", default=org)
            url = f"https://sso.heroku.com/saml/{quote(org, safe='')}/init?cli=true"

        logger.debug("opening browser to %s", url)
        with get_output().action("Opening browser for login"):
            opened = await open_url_async(url, browser)
        if not opened:
            get_output().warning(f"Cannot open browser. Go to {url} to finish login")

        token = await prompter.ask("Access token", mask=True)
        with get_output().action("Validating token"):
            account = await self._account(token)

        self.settings.org = org
        return NetrcEntry(login=account.email, password=token)

    async def _account(self, token: str) -> Account:
        response = await self._client.transport.request(
            "GET", f"{self.vars.api_url}/account", headers=bearer_headers(token)
        )
        return Account.model_validate(response.body)

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def _save_token(self, entry: NetrcEntry) -> None:
        store = self.store
        for host in (self.vars.api_host, self.vars.http_git_host):
            store.set(host, entry.login or "", entry.password or "")
        store.save()

    def _load_settings(self) -> LoginSettings:
        try:
            return load_login_settings()
        except ConfigError as exc:
            get_output().warning(str(exc))
            return LoginSettings()

    def _save_settings(self) -> None:
        try:
            save_login_settings(self.settings)
        except OSError as exc:
            get_output().warning(f"Could not save login settings: {exc}")

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    async def logout(self, token: Optional[str] = None) -> None:
        """Revoke *token* (default: the current credential) and forget it.

        The netrc entries for the API host and the HTTP git host are
        removed and the resolver's cache is cleared.

        Raises:
            APIError: If a revocation fails with an API error.
            HTTPError: If a revocation fails without an error message.
        """
        try:
            await self.teardown.logout(token)
        except HTTPError as err:
            raise APIError.from_http_error(err) from err

        store = self.store.load()
        removed = [store.remove(host) for host in (self.vars.api_host, self.vars.http_git_host)]
        if any(removed):
            store.save()
        self._client.resolver.clear()
