"""Thin wrapper around the ``git`` executable.

Only what the CLI needs to infer the current app: running a git command
and reading the repository's remotes.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import NamedTuple, Optional, Sequence, Union

from heroku_command.config import HerokuVars
from heroku_command.exceptions import GitError

logger = logging.getLogger(__name__)

GIT_NOT_FOUND = (
    "Git must be installed to use the Heroku CLI.  See instructions here: http://git-scm.com"
)


class Remote(NamedTuple):
    name: str
    url: str


class Git:
    """Run git commands in the current working directory."""

    def exec(self, args: Union[str, Sequence[str]]) -> str:
        """Run ``git <args>`` and return its standard output.

        Args:
            args: Arguments as a single string (``"remote -v"``) or a list.

        Returns:
            The command's stdout.

        Raises:
            GitError: If the ``git`` executable cannot be found.
            subprocess.CalledProcessError: If git exits with a non-zero status.
        """
        argv = shlex.split(args) if isinstance(args, str) else list(args)
        logger.debug("git %s", " ".join(argv))
        try:
            result = subprocess.run(
                ["git", *argv],
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                check=True,
            )
        except FileNotFoundError as exc:
            raise GitError(GIT_NOT_FOUND) from exc
        return result.stdout

    @property
    def remotes(self) -> list[Remote]:
        """Unique ``(name, url)`` pairs from ``git remote -v``, in order."""
        remotes: list[Remote] = []
        for line in self.exec("remote -v").splitlines():
            parts = line.split()
            if len(parts) < 2:
                continue
            remote = Remote(parts[0], parts[1])
            if remote not in remotes:
                remotes.append(remote)
        return remotes


def app_from_remote_url(url: str, vars: HerokuVars) -> Optional[str]:
    """Return the app name a platform git URL points at, or ``None``.

    Example::

        app_from_remote_url("https://git.heroku.com/myapp.git", HerokuVars())  # "myapp"
    """
    for prefix in vars.git_prefixes:
        if url.startswith(prefix):
            name = url[len(prefix):]
            if name.endswith(".git"):
                name = name[: -len(".git")]
            return name or None
    return None
