"""Shared test fixtures for heroku_command.

Provides isolated config/netrc environments, output state management, a
scripted prompter, an :class:`~heroku_command.client.APIClient` factory
backed by :class:`httpx.MockTransport`, and a CLI runner. These fixtures
are automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from heroku_command.auth.credential_store import NetrcStore
from heroku_command.auth.resolver import CredentialResolver
from heroku_command.client import APIClient, HTTPTransport
from heroku_command.config import load_vars
from heroku_command.models import ClientOptions
from heroku_command.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stderr at creation time.
    When Typer's CliRunner redirects those streams during a test and the
    test finishes, the cached references become stale. Resetting forces a
    fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


_HEROKU_ENV_VARS = [
    "HEROKU_API_KEY",
    "HEROKU_API_TOKEN",
    "HEROKU_HEADERS",
    "HEROKU_HOST",
    "HEROKU_GIT_HOST",
    "HEROKU_LOGIN_HOST",
    "HEROKU_ORGANIZATION",
    "HEROKU_TEAM",
    "HEROKU_APP",
    "HEROKU_TESTING_HEADLESS_LOGIN",
    "SSO_URL",
]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and credentials to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME and XDG_DATA_HOME to
    subdirectories of tmp_path, points NETRC at ``tmp_path/.netrc``,
    clears all HEROKU_* environment variables and changes the working
    directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("NETRC", str(tmp_path / ".netrc"))
    monkeypatch.setattr("heroku_command.config._is_xdg_platform", lambda: True)

    for var in _HEROKU_ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def netrc_path(isolated_config: Path) -> Path:
    return isolated_config / ".netrc"


@pytest.fixture
def write_netrc(netrc_path: Path) -> Callable[..., Path]:
    """Return a function that stores *password* for the API and git hosts."""

    def _write(password: str = "mypass", login: str = "me@example.com") -> Path:
        netrc_path.write_text(
            f"machine api.heroku.com\n  login {login}\n  password {password}\n"
            f"machine git.heroku.com\n  login {login}\n  password {password}\n"
        )
        return netrc_path

    return _write


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless output manager for tests that don't care about output."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a colourless output manager so stderr text can be asserted on."""
    output = OutputManager(no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


class FakePrompter:
    """Answer prompts from a label -> answer mapping and record every call.

    An answer may be a list, consumed one item per prompt with that label.
    Each prompt yields to the event loop so concurrent callers interleave
    the way they would while a user types.
    """

    def __init__(self, answers: Optional[dict[str, Any]] = None, delay: float = 0.01) -> None:
        self.answers = dict(answers or {})
        self.delay = delay
        self.calls: list[tuple[str, Optional[str], bool]] = []

    async def ask(self, label: str, *, default: Optional[str] = None, mask: bool = False) -> str:
        self.calls.append((label, default, mask))
        await asyncio.sleep(self.delay)
        answer = self.answers.get(label, default)
        if isinstance(answer, list):
            answer = answer.pop(0)
        if answer is None:
            raise AssertionError(f"unexpected prompt: {label}")
        return answer

    def labels(self) -> list[str]:
        return [label for label, _, _ in self.calls]


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


# ---------------------------------------------------------------------------
# Client factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_client(netrc_path: Path) -> Callable[..., APIClient]:
    """Factory for an APIClient whose HTTP traffic goes to *handler*.

    Keyword arguments:
        env: Environment mapping used for vars, headers and the API key.
        prompter: Prompter for two-factor codes.
        options: ClientOptions.
    """

    def _make(
        handler: Callable[[httpx.Request], Any],
        *,
        env: Optional[dict[str, str]] = None,
        prompter: Optional[FakePrompter] = None,
        options: Optional[ClientOptions] = None,
    ) -> APIClient:
        env = env if env is not None else {}
        transport = HTTPTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        resolver = CredentialResolver(load_vars(env), store=NetrcStore(netrc_path), env=env)
        return APIClient(
            resolver,
            transport=transport,
            prompter=prompter or FakePrompter(),
            options=options,
            env=env,
        )

    return _make


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
