"""HTTP transport -- the thin layer between :mod:`httpx` and the request engine.

:class:`HTTPTransport` sends one request and returns a :class:`Response`
with the parsed body, or raises :class:`HTTPError` for any status >= 400.
It knows nothing about credentials, the Platform API's error shape, or
two-factor escalation; that is the job of
:class:`~heroku_command.client.api_client.APIClient`.

Network-level failures (DNS, refused connections, timeouts) surface as the
original :class:`httpx.TransportError` subclasses and are never wrapped.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class Response:
    """A completed HTTP exchange with its body already decoded.

    Attributes:
        status_code: The HTTP status.
        headers: Response headers (case-insensitive).
        body: Parsed JSON when the server sent JSON, the text otherwise,
            or ``None`` for an empty body.
    """

    def __init__(self, status_code: int, headers: httpx.Headers, body: Any) -> None:
        self.status_code = status_code
        self.headers = headers
        self.body = body

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"


class HTTPError(Exception):
    """A response with an error status, raised by :class:`HTTPTransport`.

    Attributes:
        status_code: The HTTP status.
        headers: Response headers.
        body: Parsed response body (see :class:`Response`).
        method: Request method.
        url: Request URL.
    """

    def __init__(
        self,
        status_code: int,
        headers: httpx.Headers,
        body: Any,
        method: str,
        url: str,
    ) -> None:
        detail = body if isinstance(body, str) else json.dumps(body, default=str)
        super().__init__(f"HTTP Error {status_code} for {method} {url}\n{detail}")
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self.method = method
        self.url = url


def _decode_body(response: httpx.Response) -> Any:
    """Decode JSON bodies, falling back to text."""
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


def _body_kwargs(body: Any) -> dict[str, Any]:
    if body is None:
        return {}
    if isinstance(body, (str, bytes)):
        return {"content": body}
    return {"json": body}


class HTTPTransport:
    """Send requests through a shared :class:`httpx.AsyncClient`.

    Args:
        client: Client to use. When omitted, one is created with
            :data:`DEFAULT_TIMEOUT` and closed by :meth:`aclose`.
        timeout: Per-request timeout in seconds for the owned client.

    Example::

        transport = HTTPTransport()
        response = await transport.request("GET", "https://api.heroku.com/account",
                                           headers={"authorization": "Bearer ..."})
        await transport.aclose()
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        timeout: Optional[float] = None,
    ) -> Response:
        """Send a request and decode the response.

        Args:
            method: HTTP verb.
            url: Absolute URL.
            headers: Request headers.
            body: Dicts and lists are sent as JSON; strings and bytes raw.
            timeout: Overrides the client timeout for this request, for
                long-polling endpoints.

        Returns:
            The decoded :class:`Response` for statuses below 400.

        Raises:
            HTTPError: For statuses of 400 and above.
            httpx.TransportError: On network failures.
        """
        logger.debug("--> %s %s", method, url)
        extra = _body_kwargs(body)
        if timeout is not None:
            extra["timeout"] = timeout
        response = await self._client.request(
            method, url, headers=dict(headers or {}), **extra
        )
        logger.debug("<-- %s %s %s", method, url, response.status_code)
        decoded = _decode_body(response)
        if response.status_code >= 400:
            raise HTTPError(response.status_code, response.headers, decoded, method, url)
        return Response(response.status_code, response.headers, decoded)

    async def open_stream(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ) -> httpx.Response:
        """Send a request without reading the body.

        The caller owns the returned response and must ``await
        response.aclose()``. Error responses are read, closed and raised as
        :class:`HTTPError`, like :meth:`request`.
        """
        logger.debug("--> %s %s (stream)", method, url)
        request = self._client.build_request(
            method, url, headers=dict(headers or {}), **_body_kwargs(body)
        )
        response = await self._client.send(request, stream=True)
        if response.status_code >= 400:
            try:
                await response.aread()
                decoded = _decode_body(response)
            finally:
                await response.aclose()
            raise HTTPError(response.status_code, response.headers, decoded, method, url)
        return response

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
