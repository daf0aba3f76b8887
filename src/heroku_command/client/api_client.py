"""Authenticated Platform API client with transparent two-factor escalation.

:class:`APIClient` wraps an :class:`~heroku_command.client.transport.HTTPTransport`
and adds everything a Platform API call needs:

1. Default headers -- the versioned ``accept`` header, a ``user-agent``,
   any extra headers from ``HEROKU_HEADERS``, and ``authorization: Bearer``
   from the :class:`~heroku_command.auth.resolver.CredentialResolver`
   unless the caller supplied one.
2. Two-factor escalation -- a ``403`` with ``{"id": "two_factor"}`` is
   answered by prompting for a code and retrying. When the error names the
   owning app (and pre-authorisation is enabled) the app is pre-authorised
   once through a :class:`~heroku_command.auth.mutex.SingleFlight`, so any
   number of concurrent requests against that app share a single prompt.
3. Error translation -- every other error response becomes an
   :class:`~heroku_command.exceptions.APIError`, except bodies without a
   ``message``, which re-raise the transport's
   :class:`~heroku_command.client.transport.HTTPError` unchanged.

The retry budget counts attempts: the default of 3 allows the original
request plus two escalations.

Example::

    async with create_client() as heroku:
        apps = (await heroku.get("/apps")).body
"""

from __future__ import annotations

import logging
import platform
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, TypeVar

import httpx

from heroku_command import __version__
from heroku_command.auth.mutex import Mutex, SingleFlight
from heroku_command.auth.resolver import CredentialResolver
from heroku_command.client.transport import HTTPError, HTTPTransport, Response
from heroku_command.config import (
    ACCEPT,
    TWO_FACTOR_HEADER,
    HerokuVars,
    env_headers,
    load_vars,
)
from heroku_command.exceptions import APIError
from heroku_command.models import APIErrorBody, ClientOptions
from heroku_command.prompt import Prompter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def user_agent() -> str:
    """Return the client identity string, e.g. ``heroku-cli/0.1.0 linux-x86_64``."""
    return f"heroku-cli/{__version__} {sys.platform}-{platform.machine().lower()}"


def is_two_factor_error(err: HTTPError) -> bool:
    """Whether *err* is the server asking for a second factor."""
    return err.status_code == 403 and APIErrorBody.from_raw(err.body).id == "two_factor"


class APIClient:
    """Issue authenticated requests against the Platform API.

    Must be closed after use; use it as an async context manager.

    Args:
        resolver: Source of the bearer credential. Also carries the
            platform hosts (``resolver.vars``).
        transport: HTTP transport. A default :class:`HTTPTransport` is
            created when omitted.
        prompter: Used to ask for two-factor codes.
        options: Pre-authorisation switch and retry budget.
        env: Environment mapping for ``HEROKU_HEADERS`` (default:
            ``os.environ``).
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        transport: Optional[HTTPTransport] = None,
        prompter: Optional[Prompter] = None,
        options: Optional[ClientOptions] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.resolver = resolver
        self.transport = transport or HTTPTransport()
        self.prompter = prompter or Prompter()
        self.options = options or ClientOptions()
        self._default_headers = httpx.Headers(
            {"accept": ACCEPT, "user-agent": user_agent()}
        )
        self._default_headers.update(env_headers(env))
        self._two_factor_mutex = Mutex()
        self._preauth_flight: SingleFlight[Response] = SingleFlight()

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> APIClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.transport.aclose()

    # ------------------------------------------------------------------ #
    # Credential
    # ------------------------------------------------------------------ #

    @property
    def vars(self) -> HerokuVars:
        return self.resolver.vars

    @property
    def auth(self) -> Optional[str]:
        """The bearer credential sent with requests, or ``None``."""
        return self.resolver.resolve()

    @auth.setter
    def auth(self, token: Optional[str]) -> None:
        self.resolver.token = token

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        retries: Optional[int] = None,
    ) -> Response:
        """Send a request, escalating to two-factor auth when challenged.

        Args:
            method: HTTP verb.
            path: Path relative to the API URL, or an absolute URL.
            headers: Extra headers; they override the defaults.
            body: JSON-serialisable body, or a raw string.
            retries: Attempt budget; defaults to ``options.retries``.

        Returns:
            The successful :class:`~heroku_command.client.transport.Response`.

        Raises:
            APIError: For error responses carrying a message, including a
                two-factor challenge once the budget is spent.
            HTTPError: For error responses without a message.
            httpx.TransportError: On network failures.
        """
        url = self._url(path)
        return await self._send_with_step_up(
            lambda h: self.transport.request(method, url, headers=h, body=body),
            headers,
            retries,
        )

    async def get(self, path: str, **kwargs: Any) -> Response:
        """Send a GET request. See :meth:`request`."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Response:
        """Send a POST request. See :meth:`request`."""
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Response:
        """Send a PUT request. See :meth:`request`."""
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Response:
        """Send a PATCH request. See :meth:`request`."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Response:
        """Send a DELETE request. See :meth:`request`."""
        return await self.request("DELETE", path, **kwargs)

    @asynccontextmanager
    async def stream(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        retries: Optional[int] = None,
    ) -> AsyncIterator[httpx.Response]:
        """Open a raw streaming response (log drains, build output).

        Escalation and error translation apply to opening the stream; the
        body is yielded unread as an :class:`httpx.Response`.

        Example::

            async with heroku.stream("/apps/myapp/log-sessions/...") as resp:
                async for line in resp.aiter_lines():
                    ...
        """
        url = self._url(path)
        response = await self._send_with_step_up(
            lambda h: self.transport.open_stream(method, url, headers=h, body=body),
            headers,
            retries,
        )
        try:
            yield response
        finally:
            await response.aclose()

    # ------------------------------------------------------------------ #
    # Two-factor
    # ------------------------------------------------------------------ #

    async def two_factor_prompt(self) -> str:
        """Ask for a two-factor code, one prompt at a time."""
        return await self._two_factor_mutex.synchronize(
            lambda: self.prompter.ask("Two-factor code", mask=True)
        )

    async def preauth(self, app: str, factor: str) -> Response:
        """Pre-authorise *app* with the two-factor code *factor*."""
        return await self.put(
            f"/apps/{app}/pre-authorizations",
            headers={TWO_FACTOR_HEADER: factor},
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.vars.api_url}{path if path.startswith('/') else '/' + path}"

    def _build_headers(self, headers: Optional[Mapping[str, str]]) -> httpx.Headers:
        merged = httpx.Headers(self._default_headers)
        merged.update(headers or {})
        if "authorization" not in merged:
            token = self.resolver.resolve()
            if token:
                merged["authorization"] = f"Bearer {token}"
        return merged

    async def _send_with_step_up(
        self,
        send: Callable[[httpx.Headers], Awaitable[T]],
        headers: Optional[Mapping[str, str]],
        retries: Optional[int],
    ) -> T:
        remaining = self.options.retries if retries is None else retries
        request_headers = self._build_headers(headers)
        while True:
            remaining -= 1
            try:
                return await send(request_headers)
            except HTTPError as err:
                if remaining > 0 and is_two_factor_error(err):
                    request_headers = await self._step_up(err, request_headers)
                    continue
                raise APIError.from_http_error(err) from err

    async def _step_up(self, err: HTTPError, headers: httpx.Headers) -> httpx.Headers:
        """Satisfy a two-factor challenge and return the headers to retry with."""
        body = APIErrorBody.from_raw(err.body)
        app = body.app.name if body.app else None

        if not app or not self.options.preauth:
            logger.debug("two-factor challenge for %s %s; prompting", err.method, err.url)
            retry_headers = httpx.Headers(headers)
            retry_headers[TWO_FACTOR_HEADER] = await self.two_factor_prompt()
            return retry_headers

        logger.debug("two-factor challenge for app %s; pre-authorising", app)

        async def prompt_and_preauth() -> Response:
            factor = await self.two_factor_prompt()
            return await self.preauth(app, factor)

        await self._preauth_flight.synchronize(app, prompt_and_preauth)
        return headers


def create_client(
    options: Optional[ClientOptions] = None,
    env: Optional[Mapping[str, str]] = None,
    transport: Optional[HTTPTransport] = None,
) -> APIClient:
    """Build an :class:`APIClient` configured from *env* (default: ``os.environ``).

    The platform hosts come from :func:`~heroku_command.config.load_vars`
    and the credential from a fresh
    :class:`~heroku_command.auth.resolver.CredentialResolver` over the
    default netrc file.
    """
    resolver = CredentialResolver(load_vars(env), env=env)
    return APIClient(resolver, transport=transport, options=options, env=env)
