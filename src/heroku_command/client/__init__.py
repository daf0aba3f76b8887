"""HTTP client module for heroku_command.

Two layers wrap :mod:`httpx`:

Classes:
    :class:`HTTPTransport` -- sends one request, decodes the body and
    raises :class:`HTTPError` for error statuses.
    :class:`APIClient` -- adds Platform API headers, the bearer credential,
    two-factor escalation and :class:`~heroku_command.exceptions.APIError`
    translation.

:func:`create_client` wires an :class:`APIClient` to the environment.

Example::

    from heroku_command.client import create_client

    async with create_client() as heroku:
        resp = await heroku.get("/apps")
"""

from heroku_command.client.api_client import APIClient, create_client
from heroku_command.client.transport import HTTPError, HTTPTransport, Response

__all__ = ["APIClient", "HTTPError", "HTTPTransport", "Response", "create_client"]
