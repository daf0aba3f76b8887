"""Session teardown -- revoke the credential the CLI is holding.

Logging out has to undo two different server-side records, because the
token in the credential store may be backed by either:

* an **OAuth session** (SSO and browser logins are created by a trusted
  client, so they never appear in the authorization list), and
* an **OAuth authorization** (interactive logins).

:meth:`SessionTeardown.logout` deletes both concurrently. It never deletes
the account's *default* authorization -- the token shown as "API Key" in
the dashboard -- because the user may depend on it elsewhere.

"Already gone" answers (404 ``not_found`` for the session, 401
``unauthorized`` from a token that is already invalid) count as success.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from heroku_command.auth.resolver import CredentialResolver
from heroku_command.client.transport import HTTPError, HTTPTransport
from heroku_command.config import ACCEPT, HerokuVars
from heroku_command.models import APIErrorBody, OAuthAuthorization

logger = logging.getLogger(__name__)


def bearer_headers(token: str) -> dict[str, str]:
    """Headers for a raw API call made with an explicit *token*."""
    return {"accept": ACCEPT, "authorization": f"Bearer {token}"}


def _is(err: HTTPError, status: int, error_id: str, resource: Optional[str] = None) -> bool:
    body = APIErrorBody.from_raw(err.body)
    if err.status_code != status or body.id != error_id:
        return False
    return resource is None or body.resource == resource


class SessionTeardown:
    """Revoke the session and authorization behind a token.

    Requests go straight to the transport with the token being revoked,
    bypassing the resolver and two-factor escalation.

    Args:
        transport: HTTP transport.
        vars: Platform hosts.
        resolver: Supplies the default token to revoke.
    """

    def __init__(
        self,
        transport: HTTPTransport,
        vars: HerokuVars,
        resolver: CredentialResolver,
    ) -> None:
        self._transport = transport
        self._vars = vars
        self._resolver = resolver

    async def logout(self, token: Optional[str] = None) -> None:
        """Revoke *token* (default: the resolved credential).

        Both revocations run concurrently and always settle before this
        returns. Does nothing, and makes no request, without a token.

        Raises:
            HTTPError: If either revocation fails for a reason other than
                the token or session already being gone.
        """
        token = token if token is not None else self._resolver.resolve()
        if not token:
            logger.debug("no credentials to logout")
            return

        results = await asyncio.gather(
            self._delete_session(token),
            self._delete_authorizations(token),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _delete_session(self, token: str) -> None:
        try:
            await self._transport.request(
                "DELETE",
                f"{self._vars.api_url}/oauth/sessions/~",
                headers=bearer_headers(token),
            )
        except HTTPError as err:
            if _is(err, 404, "not_found", "session") or _is(err, 401, "unauthorized"):
                logger.debug("session already revoked")
                return
            raise

    async def _delete_authorizations(self, token: str) -> None:
        try:
            await self._revoke_authorizations(token)
        except HTTPError as err:
            if _is(err, 401, "unauthorized"):
                logger.debug("authorization already revoked")
                return
            raise

    async def _revoke_authorizations(self, token: str) -> None:
        response = await self._transport.request(
            "GET",
            f"{self._vars.api_url}/oauth/authorizations",
            headers=bearer_headers(token),
        )

        if await self.default_token(token) == token:
            logger.debug("token is the account's default authorization; keeping it")
            return

        authorizations = [
            OAuthAuthorization.model_validate(a) for a in (response.body or [])
        ]
        matching = [
            a for a in authorizations if a.access_token and a.access_token.token == token
        ]
        await asyncio.gather(
            *(
                self._transport.request(
                    "DELETE",
                    f"{self._vars.api_url}/oauth/authorizations/{a.id}",
                    headers=bearer_headers(token),
                )
                for a in matching
            )
        )

    async def default_token(self, token: str) -> Optional[str]:
        """Return the account's default (dashboard) token, if it has one."""
        try:
            response = await self._transport.request(
                "GET",
                f"{self._vars.api_url}/oauth/authorizations/~",
                headers=bearer_headers(token),
            )
        except HTTPError as err:
            if _is(err, 404, "not_found", "authorization") or _is(err, 401, "unauthorized"):
                return None
            raise
        authorization = OAuthAuthorization.model_validate(response.body)
        return authorization.access_token.token if authorization.access_token else None
