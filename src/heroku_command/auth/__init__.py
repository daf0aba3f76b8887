"""Credential handling for heroku_command.

The building blocks every request path depends on:

- :class:`NetrcStore` -- the host-keyed credential file (``~/.netrc``).
- :class:`CredentialResolver` -- picks the bearer token for the process
  from the environment or the store, once.
- :class:`SingleFlight` and :class:`Mutex` -- coroutine serialisation used
  by two-factor escalation.

The login and logout flows live in :mod:`heroku_command.auth.login` and
:mod:`heroku_command.auth.session`; they depend on
:mod:`heroku_command.client` and are imported from their modules directly.

Typical usage::

    from heroku_command.auth import CredentialResolver
    from heroku_command.config import load_vars

    token = CredentialResolver(load_vars()).resolve()
"""

from heroku_command.auth.credential_store import NetrcEntry, NetrcStore
from heroku_command.auth.mutex import Mutex, SingleFlight
from heroku_command.auth.resolver import CredentialResolver

__all__ = [
    "CredentialResolver",
    "Mutex",
    "NetrcEntry",
    "NetrcStore",
    "SingleFlight",
]
