"""Configuration: XDG paths, platform hosts, environment headers and login settings.

This module handles all process-wide configuration for heroku_command:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.heroku/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir` and :func:`get_data_dir`.
* **Platform hosts** -- :class:`HerokuVars` derives the API URL, the API
  host used as the credential-store key, and the git hosts from
  ``HEROKU_HOST``. Build one with :func:`load_vars`.
* **Extra request headers** -- :func:`env_headers` parses the JSON object in
  ``HEROKU_HEADERS``.
* **Login settings** -- :func:`load_login_settings` and
  :func:`save_login_settings` persist the method/organisation hint in
  ``<data_dir>/login.json``.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so readers never observe a partial file.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict

from heroku_command.exceptions import ConfigError
from heroku_command.models import LoginSettings

logger = logging.getLogger(__name__)

_APP_NAME = "heroku"
_LOGIN_SETTINGS_FILENAME = "login.json"

DEFAULT_HOST = "heroku.com"
DEFAULT_LOGIN_HOST = "https://cli-login.heroku.com"

ACCEPT = "application/vnd.heroku+json; version=3"
TWO_FACTOR_HEADER = "Heroku-Two-Factor-Code"


# --- Directories ---


def _is_xdg_platform() -> bool:
    """Linux and the BSDs follow the XDG base-directory layout."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: tuple[str, ...], fallback: Optional[str]) -> Path:
    """Return (and create) one of the application's directories.

    On XDG platforms this is ``$<xdg_var>/heroku``, with *xdg_default*
    under the home directory standing in for an unset variable. Elsewhere
    it is ``~/.heroku/<fallback>``, or ``~/.heroku`` itself when *fallback*
    is ``None``.
    """
    if _is_xdg_platform():
        base = os.environ.get(xdg_var) or Path.home().joinpath(*xdg_default)
        path = Path(base) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback:
            path = path / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/heroku`` on Linux/BSD, ``~/.heroku`` elsewhere."""
    return _app_dir("XDG_CONFIG_HOME", (".config",), None)


def get_cache_dir() -> Path:
    """Directory for completion caches; safe to delete at any time.

    ``$XDG_CACHE_HOME/heroku`` on Linux/BSD, ``~/.heroku/cache`` elsewhere.
    """
    return _app_dir("XDG_CACHE_HOME", (".cache",), "cache")


def get_data_dir() -> Path:
    """Directory for login settings and crash logs.

    ``$XDG_DATA_HOME/heroku`` on Linux/BSD, ``~/.heroku/data`` elsewhere.
    """
    return _app_dir("XDG_DATA_HOME", (".local", "share"), "data")


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* so readers never see a partial file.

    The data goes to a temporary sibling first, which is then renamed over
    *path*. With *mode*, the permissions are set before anything is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handle, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.chmod(tmp_name, mode)
        with os.fdopen(handle, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


# --- Platform hosts ---


class HerokuVars(BaseModel):
    """Platform hostnames derived from the environment.

    ``host`` is either a bare domain (``heroku.com``) or a full URL
    (``https://api.staging.example.com``) pointing straight at the API.

    Example::

        vars = HerokuVars()
        vars.api_url        # "https://api.heroku.com"
        vars.http_git_host  # "git.heroku.com"
    """

    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_HOST
    git_host_override: Optional[str] = None
    login_host: str = DEFAULT_LOGIN_HOST
    login_host_override: bool = False
    sso_url: Optional[str] = None
    headless_login: bool = False

    def _url_host(self) -> Optional[str]:
        if self.host.startswith("http"):
            return urlparse(self.host).netloc or None
        return None

    @property
    def api_host(self) -> str:
        """The API hostname, also the key of the stored API credential."""
        return self._url_host() or f"api.{self.host}"

    @property
    def api_url(self) -> str:
        if self.host.startswith("http"):
            return self.host.rstrip("/")
        return f"https://{self.api_host}"

    @property
    def git_host(self) -> str:
        if self.git_host_override:
            return self.git_host_override
        return self._url_host() or self.host

    @property
    def http_git_host(self) -> str:
        if self.git_host_override:
            return self.git_host_override
        return self._url_host() or f"git.{self.host}"

    @property
    def git_prefixes(self) -> list[str]:
        """URL prefixes that identify a git remote as pointing at this platform."""
        return [
            f"git@{self.git_host}:",
            f"ssh://git@{self.git_host}/",
            f"https://{self.http_git_host}/",
        ]


def load_vars(env: Optional[Mapping[str, str]] = None) -> HerokuVars:
    """Build :class:`HerokuVars` from *env* (default: ``os.environ``).

    Reads ``HEROKU_HOST``, ``HEROKU_GIT_HOST``, ``HEROKU_LOGIN_HOST``,
    ``SSO_URL`` and ``HEROKU_TESTING_HEADLESS_LOGIN``.
    """
    env = os.environ if env is None else env
    login_host = env.get("HEROKU_LOGIN_HOST") or None
    return HerokuVars(
        host=env.get("HEROKU_HOST") or DEFAULT_HOST,
        git_host_override=env.get("HEROKU_GIT_HOST") or None,
        login_host=(login_host or DEFAULT_LOGIN_HOST).rstrip("/"),
        login_host_override=login_host is not None,
        sso_url=env.get("SSO_URL") or None,
        headless_login=env.get("HEROKU_TESTING_HEADLESS_LOGIN") == "1",
    )


def env_headers(env: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Parse the extra request headers in ``HEROKU_HEADERS``.

    Returns:
        The header mapping, or an empty dict when the variable is unset.

    Raises:
        ConfigError: If the value is not a JSON object.
    """
    env = os.environ if env is None else env
    raw = env.get("HEROKU_HEADERS")
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"HEROKU_HEADERS is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("HEROKU_HEADERS must be a JSON object")
    return {str(k): str(v) for k, v in data.items()}


# --- Login settings ---


def login_settings_path() -> Path:
    return get_data_dir() / _LOGIN_SETTINGS_FILENAME


def load_login_settings() -> LoginSettings:
    """Load the saved login hint.

    Returns:
        The saved :class:`~heroku_command.models.LoginSettings`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but cannot be read or parsed.
    """
    path = login_settings_path()
    if not path.is_file():
        logger.debug("no login settings at %s", path)
        return LoginSettings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return LoginSettings.model_validate(data)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid login settings at {path}: {exc}") from exc


def save_login_settings(settings: LoginSettings) -> None:
    """Persist the login hint, removing the file when there is nothing to keep."""
    path = login_settings_path()
    if settings.is_empty():
        if path.is_file():
            path.unlink()
        return
    data = settings.model_dump(mode="json", exclude_none=True)
    _atomic_write(path, json.dumps(data, indent=2) + "\n")
