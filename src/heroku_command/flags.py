"""Resolution of the ``--app`` and ``--team`` values shared by commands.

Commands accept an app explicitly, but most users rely on the app being
inferred from the environment or from the repository's git remotes. The
functions here implement that fallback chain; the Typer options themselves
are declared by each command.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Mapping, Optional

from heroku_command.config import HerokuVars, load_vars
from heroku_command.exceptions import GitError, InvalidUsageError
from heroku_command.git import Git, app_from_remote_url

logger = logging.getLogger(__name__)


def resolve_app(
    app: Optional[str] = None,
    remote: Optional[str] = None,
    *,
    required: bool = False,
    git: Optional[Git] = None,
    env: Optional[Mapping[str, str]] = None,
    vars: Optional[HerokuVars] = None,
) -> Optional[str]:
    """Work out which app a command targets.

    Precedence: *app*, ``HEROKU_APP``, the app behind the git remote named
    *remote*, and finally the only git remote pointing at the platform.

    Args:
        app: Value of ``--app``.
        remote: Value of ``--remote``.
        required: Fail instead of returning ``None`` when nothing matches.
        git: Git wrapper (default: a new :class:`~heroku_command.git.Git`).
        env: Environment mapping (default: ``os.environ``).
        vars: Platform hosts used to recognise git URLs.

    Returns:
        The app name, or ``None`` for an optional app that cannot be found.
        Git failures count as "not found" for an optional app.

    Raises:
        InvalidUsageError: If *remote* is unknown, several platform remotes
            exist, or a required app cannot be found.
    """
    if app:
        return app
    env = os.environ if env is None else env
    if env.get("HEROKU_APP"):
        return env["HEROKU_APP"]

    vars = vars or load_vars(env)
    git = git or Git()
    try:
        remotes = git.remotes
    except (GitError, OSError, subprocess.CalledProcessError) as exc:
        if required:
            raise
        logger.debug("cannot read git remotes: %s", exc)
        return None

    apps: dict[str, str] = {}
    for r in remotes:
        name = app_from_remote_url(r.url, vars)
        if name is not None:
            apps[r.name] = name

    if remote:
        if remote not in apps:
            raise InvalidUsageError(f"remote {remote} not found in git remotes")
        return apps[remote]

    unique = sorted(set(apps.values()))
    if len(unique) > 1:
        listing = "\n".join(f"  {name} ({r})" for r, name in apps.items())
        raise InvalidUsageError(
            "Multiple apps in git remotes\n"
            "  Usage: --remote REMOTE or --app APP\n"
            "  Your local git repository references more than one app.\n"
            f"  Heroku remotes in repo:\n{listing}"
        )
    if unique:
        return unique[0]
    if required:
        raise InvalidUsageError(
            "No app specified\n  Usage: --app APP\n  "
            "We don't know which app to run this on.\n  "
            "Run this command from inside an app folder or specify which app to use with --app APP"
        )
    return None


def resolve_team(
    team: Optional[str] = None,
    org: Optional[str] = None,
    *,
    required: bool = False,
    env: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Work out which team a command targets.

    Precedence: *team*, ``HEROKU_TEAM``, *org* (the deprecated ``--org``
    flag), ``HEROKU_ORGANIZATION``.

    Raises:
        InvalidUsageError: If *required* and no source supplies a team.
    """
    env = os.environ if env is None else env
    for value in (team, env.get("HEROKU_TEAM"), org, env.get("HEROKU_ORGANIZATION")):
        if value:
            return value
    if required:
        raise InvalidUsageError("No team specified")
    return None
