"""Credential resolution for API requests.

:class:`CredentialResolver` answers one question -- *which bearer token
should this process send?* -- and remembers the answer. It is constructed
once per process and injected into every component that issues requests.

Precedence (first match wins):

1. An explicit in-memory override (``resolver.token = "..."``), set by a
   successful login.
2. ``HEROKU_API_KEY`` from the environment. A warning is printed when
   only the deprecated ``HEROKU_API_TOKEN`` is set.
3. The password stored for the API host in the netrc credential store.

``None`` is a valid, cached result meaning "unauthenticated caller".
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from heroku_command.auth.credential_store import NetrcStore
from heroku_command.config import HerokuVars
from heroku_command.output import get_output

logger = logging.getLogger(__name__)

API_KEY_ENV = "HEROKU_API_KEY"
DEPRECATED_API_KEY_ENV = "HEROKU_API_TOKEN"


class CredentialResolver:
    """Resolve and cache the bearer credential for a process.

    Args:
        vars: Platform hosts; ``vars.api_host`` keys the stored credential.
        store: Credential store consulted as the last resort. Loaded
            lazily on first resolution.
        env: Environment mapping (default: ``os.environ``).

    Example::

        resolver = CredentialResolver(load_vars())
        token = resolver.resolve()
    """

    def __init__(
        self,
        vars: HerokuVars,
        store: Optional[NetrcStore] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._vars = vars
        self._store = store if store is not None else NetrcStore()
        self._env = os.environ if env is None else env
        self._token: Optional[str] = None
        self._resolved = False

    @property
    def store(self) -> NetrcStore:
        return self._store

    @property
    def vars(self) -> HerokuVars:
        return self._vars

    @property
    def token(self) -> Optional[str]:
        """The resolved credential; see :meth:`resolve`."""
        return self.resolve()

    @token.setter
    def token(self, value: Optional[str]) -> None:
        self._token = value
        self._resolved = True

    def resolve(self) -> Optional[str]:
        """Return the credential, computing it on first use.

        Later calls return the cached value without touching the
        environment or the credential store again.
        """
        if self._resolved:
            return self._token

        self._token = self._from_env() or self._from_store()
        self._resolved = True
        logger.debug("credential resolved: %s", "present" if self._token else "absent")
        return self._token

    def clear(self) -> None:
        """Forget the cached credential so the next call resolves again."""
        self._token = None
        self._resolved = False

    def api_key_from_env(self) -> Optional[str]:
        """Return ``HEROKU_API_KEY`` if it is set and non-empty."""
        return self._env.get(API_KEY_ENV) or None

    def _from_env(self) -> Optional[str]:
        if self._env.get(DEPRECATED_API_KEY_ENV) and not self._env.get(API_KEY_ENV):
            get_output().warning(
                f"{DEPRECATED_API_KEY_ENV} is set but you probably meant {API_KEY_ENV}"
            )
        return self.api_key_from_env()

    def _from_store(self) -> Optional[str]:
        self._store.load()
        entry = self._store.get(self._vars.api_host)
        return entry.password if entry is not None else None
