"""Exception hierarchy for heroku_command.

All exceptions inherit from :class:`HerokuError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`heroku_command.exit_codes`. The top-level error handler in
:func:`heroku_command.app.main` catches ``HerokuError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log.

Subclass hierarchy::

    HerokuError (exit 1)
    +-- APIError                    (exit 1)
    +-- AuthError                   (exit 3)
    |   +-- EnvironmentConflictError
    |   +-- LoginError
    |       +-- LoginTimeoutError
    +-- ConfigError                 (exit 1)
    +-- GitError                    (exit 1)
    +-- InvalidUsageError           (exit 2)

The transport's own :class:`~heroku_command.client.transport.HTTPError` is
deliberately *not* part of this hierarchy: it belongs to the HTTP layer and
is passed through unchanged whenever the server body carries no message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from heroku_command.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)
from heroku_command.models import APIErrorBody, AppRef

if TYPE_CHECKING:
    from heroku_command.client.transport import HTTPError


class HerokuError(Exception):
    """Base exception for all heroku_command errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`heroku_command.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class APIError(HerokuError):
    """A structured error returned by the Platform API.

    The rendered message combines the server-supplied ``message`` with the
    error id, the owning app name and the help URL when those are present::

        You must be a member of the team to do that.

        Error ID: forbidden
        App: myapp
        See https://devcenter.heroku.com/articles/... for more information.

    Instances are normally built with :meth:`from_http_error`, which refuses
    to wrap a body without a message.

    Args:
        message: The server's human-readable message.
        id: The machine-readable error identifier (e.g. ``"two_factor"``).
        resource: The resource type the error refers to.
        app: The app that owns the resource, when the server reports one.
        url: A documentation URL for the error.
        http: The underlying transport error, when there is one.
    """

    def __init__(
        self,
        message: str,
        *,
        id: Optional[str] = None,
        resource: Optional[str] = None,
        app: Optional[AppRef] = None,
        url: Optional[str] = None,
        http: Optional[HTTPError] = None,
    ):
        info: list[str] = []
        if id:
            info.append(f"Error ID: {id}")
        if app and app.name:
            info.append(f"App: {app.name}")
        if url:
            info.append(f"See {url} for more information.")
        rendered = "\n".join([message, "", *info]) if info else message
        super().__init__(rendered)
        self.message = message
        self.id = id
        self.resource = resource
        self.app = app
        self.url = url
        self.http = http

    @property
    def body(self) -> dict[str, Any]:
        """The raw error body as returned by the server."""
        if self.http is not None and isinstance(self.http.body, dict):
            return self.http.body
        return {}

    @classmethod
    def from_http_error(cls, http_error: HTTPError) -> APIError:
        """Build an :class:`APIError` from a transport error.

        Args:
            http_error: The error raised by the transport.

        Returns:
            The structured error.

        Raises:
            HTTPError: *http_error* itself, when its body does not contain
                a ``message``. Message-less errors are never wrapped so
                that the status and raw body stay visible.
        """
        body = APIErrorBody.from_raw(http_error.body)
        if not body.message:
            raise http_error
        return cls(
            body.message,
            id=body.id,
            resource=body.resource,
            app=body.app,
            url=body.url,
            http=http_error,
        )


class AuthError(HerokuError):
    """Raised when authentication fails or no credential is available."""

    exit_code = EXIT_AUTH_FAILURE


class EnvironmentConflictError(AuthError):
    """Raised when the environment forbids the requested auth flow.

    For example, an interactive login is refused while ``HEROKU_API_KEY``
    is set because the key would silently shadow the new credential.
    """


class LoginError(AuthError):
    """Raised when a login strategy fails for a reason other than an API error."""


class LoginTimeoutError(LoginError):
    """Raised when no login strategy completes within the session timeout."""


class ConfigError(HerokuError):
    """Raised for configuration problems (invalid ``HEROKU_HEADERS``, unreadable files)."""

    exit_code = EXIT_GENERIC_FAILURE


class GitError(HerokuError):
    """Raised when git is missing or the repository state is unusable."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidUsageError(HerokuError):
    """Raised for invalid CLI arguments or missing required values such as ``--app``."""

    exit_code = EXIT_INVALID_USAGE
