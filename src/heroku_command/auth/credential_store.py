"""Host-keyed credential store in the ``.netrc`` format.

Credentials live in ``~/.netrc`` (``~/_netrc`` on Windows, or the file named
by ``$NETRC``) so that git and other tools that understand the format can
reuse the platform token when pushing over HTTPS::

    machine api.heroku.com
      login me@example.com
      password 01234567-89ab-cdef-0123-456789abcdef
    machine git.heroku.com
      login me@example.com
      password 01234567-89ab-cdef-0123-456789abcdef

The store is loaded and saved wholesale. Saves are atomic
(:func:`~heroku_command.config._atomic_write`) with ``0o600`` permissions,
so readers never observe a half-written file. Unknown per-machine fields
(including the legacy ``method`` and ``org`` fields older CLIs wrote) are
preserved on read, and ``macdef`` blocks are skipped.

See Also:
    :class:`~heroku_command.auth.resolver.CredentialResolver` -- reads the
    API host's password from this store.
"""

from __future__ import annotations

import os
import shlex
import sys
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from heroku_command.config import _atomic_write
from heroku_command.exceptions import ConfigError

LEGACY_FIELDS = ("method", "org")
"""Machine fields written by older CLIs that are dropped on the next save."""

_KNOWN_FIELDS = ("login", "password", "account")


class NetrcEntry(BaseModel):
    """One ``machine`` block of the credential store.

    Attributes:
        login: Account identifier, normally the user's email.
        password: The secret. Excluded from ``repr`` so it never reaches
            logs or tracebacks.
        account: Optional ``account`` field, kept for round-tripping.
        extras: Any other ``key value`` pairs found in the block.
    """

    login: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    account: Optional[str] = None
    extras: dict[str, str] = Field(default_factory=dict)


def default_netrc_path() -> Path:
    """Return ``$NETRC`` or the platform's default netrc file."""
    env_path = os.environ.get("NETRC")
    if env_path:
        return Path(env_path).expanduser()
    name = "_netrc" if sys.platform == "win32" else ".netrc"
    return Path.home() / name


def _quote(value: str) -> str:
    if value and not any(c.isspace() or c in "\"'#\\" for c in value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class NetrcStore:
    """Read/write the netrc credential file.

    Args:
        path: File to use. Defaults to :func:`default_netrc_path`.

    Example::

        store = NetrcStore()
        store.load()
        store.set("api.heroku.com", "me@example.com", "token")
        store.save()
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else default_netrc_path()
        self.machines: dict[str, NetrcEntry] = {}
        self.default: Optional[NetrcEntry] = None

    @property
    def path(self) -> Path:
        """The filesystem path of the netrc file."""
        return self._path

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    def load(self) -> NetrcStore:
        """Replace the in-memory machines with the file's content.

        A missing file loads as an empty store.

        Returns:
            ``self``, for chaining.

        Raises:
            ConfigError: If the file exists but cannot be read or parsed.
        """
        self.machines = {}
        self.default = None
        if not self._path.is_file():
            return self
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {self._path}: {exc}") from exc
        self._parse(text)
        return self

    def _parse(self, text: str) -> None:
        current: Optional[NetrcEntry] = None
        pending_key: Optional[str] = None
        in_macdef = False

        for lineno, line in enumerate(text.splitlines(), 1):
            if in_macdef:
                # A macro body runs until the first empty line.
                if not line.strip():
                    in_macdef = False
                continue
            try:
                tokens = shlex.split(line, comments=True)
            except ValueError as exc:
                raise ConfigError(f"{self._path}:{lineno}: {exc}") from exc

            for token in tokens:
                if pending_key is not None:
                    if pending_key == "machine":
                        current = NetrcEntry()
                        self.machines[token] = current
                    elif pending_key == "macdef":
                        in_macdef = True
                    elif current is not None:
                        self._assign(current, pending_key, token)
                    pending_key = None
                elif token == "default":
                    current = NetrcEntry()
                    self.default = current
                elif token in ("machine", "macdef"):
                    pending_key = token
                elif current is None:
                    raise ConfigError(
                        f"{self._path}:{lineno}: '{token}' outside of a machine entry"
                    )
                else:
                    pending_key = token

        if pending_key is not None:
            raise ConfigError(f"{self._path}: missing value for '{pending_key}'")

    @staticmethod
    def _assign(entry: NetrcEntry, key: str, value: str) -> None:
        if key == "user":
            key = "login"
        if key in _KNOWN_FIELDS:
            setattr(entry, key, value)
        else:
            entry.extras[key] = value

    # ------------------------------------------------------------------ #
    # Access
    # ------------------------------------------------------------------ #

    def get(self, host: str) -> Optional[NetrcEntry]:
        """Return the entry for *host*, or ``None``."""
        return self.machines.get(host)

    def set(self, host: str, login: str, password: str) -> NetrcEntry:
        """Create or overwrite the login/password for *host*.

        Legacy ``method``/``org`` fields on the entry are removed; other
        extra fields are kept.
        """
        entry = self.machines.get(host) or NetrcEntry()
        entry.login = login
        entry.password = password
        for field in LEGACY_FIELDS:
            entry.extras.pop(field, None)
        self.machines[host] = entry
        return entry

    def remove(self, host: str) -> bool:
        """Delete the entry for *host*. Returns whether one existed."""
        return self.machines.pop(host, None) is not None

    # ------------------------------------------------------------------ #
    # Saving
    # ------------------------------------------------------------------ #

    def dumps(self) -> str:
        """Serialise all machines in netrc syntax."""
        blocks: list[str] = []
        for host, entry in self.machines.items():
            blocks.append(self._format_block(f"machine {_quote(host)}", entry))
        if self.default is not None:
            blocks.append(self._format_block("default", self.default))
        return "".join(blocks)

    @staticmethod
    def _format_block(header: str, entry: NetrcEntry) -> str:
        lines = [header]
        for key in _KNOWN_FIELDS:
            value = getattr(entry, key)
            if value is not None:
                lines.append(f"  {key} {_quote(value)}")
        for key, value in entry.extras.items():
            lines.append(f"  {key} {_quote(value)}")
        return "\n".join(lines) + "\n"

    def save(self) -> None:
        """Write the store atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        _atomic_write(self._path, self.dumps(), mode=0o600)
