"""Canonical Pydantic models shared across heroku_command.

The models fall into three groups:

**Options** -- how callers configure the client and the login flow:
    :class:`ClientOptions`, :class:`LoginOptions`.

**Persisted state** -- written to the user's data directory:
    :class:`LoginSettings`.

**Wire shapes** -- the subset of Platform API and login-service payloads
this package reads:
    :class:`AppRef`, :class:`APIErrorBody`, :class:`Account`,
    :class:`AccessToken`, :class:`AuthorizationUser`,
    :class:`OAuthAuthorization`, :class:`LoginURLs`,
    :class:`BrowserLoginResult`.

Wire models use ``extra="allow"`` so that fields added by the server later
do not break validation.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


LoginMethod = Literal["browser", "interactive", "sso"]
"""The three supported login strategies."""


# --- Options ---


class ClientOptions(BaseModel):
    """Per-client behaviour switches for :class:`~heroku_command.client.APIClient`.

    Attributes:
        preauth: When ``True``, a two-factor challenge for a request that
            belongs to an app is answered by pre-authorising the whole app
            once, so that concurrent requests against it share one prompt.
        retries: Total attempt budget per request, including the first.
    """

    preauth: bool = Field(default=True, description="Pre-authorise apps on two-factor challenges")
    retries: int = Field(default=3, ge=1, description="Attempts per request including the first")


class LoginOptions(BaseModel):
    """Options accepted by :meth:`~heroku_command.auth.login.Login.login`.

    Example::

        LoginOptions(method="interactive", expires_in=3600)
    """

    method: Optional[LoginMethod] = Field(
        default=None, description="Force a login strategy instead of asking"
    )
    expires_in: Optional[int] = Field(
        default=None, gt=0, description="Token lifetime in seconds (interactive only)"
    )
    browser: Optional[str] = Field(
        default=None, description="Name of the browser to open, as understood by webbrowser.get"
    )


# --- Persisted state ---


class LoginSettings(BaseModel):
    """The hint saved between logins in ``<data_dir>/login.json``."""

    model_config = ConfigDict(extra="ignore")

    method: Optional[str] = None
    org: Optional[str] = None

    def is_empty(self) -> bool:
        return self.method is None and self.org is None


# --- Wire shapes ---


class AppRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None


class APIErrorBody(BaseModel):
    """The JSON body the Platform API returns alongside an error status."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    message: Optional[str] = None
    resource: Optional[str] = None
    url: Optional[str] = None
    app: Optional[AppRef] = None

    @classmethod
    def from_raw(cls, body: Any) -> APIErrorBody:
        """Validate *body*, treating anything that is not a usable object as empty."""
        if not isinstance(body, dict):
            return cls()
        try:
            return cls.model_validate(body)
        except ValueError:
            return cls()


class Account(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str
    id: Optional[str] = None


class AccessToken(BaseModel):
    model_config = ConfigDict(extra="allow")

    token: Optional[str] = None
    expires_in: Optional[int] = None


class AuthorizationUser(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: Optional[str] = None
    id: Optional[str] = None


class OAuthAuthorization(BaseModel):
    """An entry of ``GET /oauth/authorizations``."""

    model_config = ConfigDict(extra="allow")

    id: str
    description: Optional[str] = None
    access_token: Optional[AccessToken] = None
    user: Optional[AuthorizationUser] = None


class LoginURLs(BaseModel):
    """The URL pair handed out by the CLI login service for browser login."""

    model_config = ConfigDict(extra="allow")

    browser_url: str
    cli_url: str
    token: str


class BrowserLoginResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    access_token: Optional[str] = None
    error: Optional[str] = None
