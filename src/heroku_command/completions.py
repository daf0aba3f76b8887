"""Value providers for shell completion of command options.

Each :class:`Completion` knows how to list the valid values of one kind
of option. There are three families:

* **API-backed** -- names fetched from the Platform API (apps, regions,
  dyno sizes, ...). These carry a cache duration and are stored in a
  :class:`~heroku_command.cache.CompletionCache` between invocations.
* **Static** -- fixed lists (buildpacks, roles, scopes, stages).
* **Local** -- derived from the working directory (files, Procfile
  process types, git remotes). Never cached.

Use :func:`complete` to get the values for a provider by name::

    async with create_client() as heroku:
        ctx = CompletionContext(client=heroku, app="myapp")
        values = await complete("dynos", ctx, cache=cache)
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional

from heroku_command.cache import CompletionCache
from heroku_command.client.api_client import APIClient
from heroku_command.exceptions import InvalidUsageError
from heroku_command.git import Git

logger = logging.getLogger(__name__)

ONE_DAY = 60 * 60 * 24

_PROCESS_TYPE = re.compile(r"^([A-Za-z0-9_-]+)")

BUILDPACKS = [
    "heroku/ruby",
    "heroku/nodejs",
    "heroku/clojure",
    "heroku/python",
    "heroku/java",
    "heroku/gradle",
    "heroku/scala",
    "heroku/php",
    "heroku/go",
]
ROLES = ["admin", "collaborator", "member", "owner"]
SCOPES = ["global", "identity", "read", "write", "read-protected", "write-protected"]
STAGES = ["test", "review", "development", "staging", "production"]


@dataclass
class CompletionContext:
    """What a provider may consult.

    Attributes:
        client: Client for API-backed providers.
        app: The ``--app`` value already typed, if any.
        cwd: Directory for local providers (default: the process cwd).
        git: Git wrapper for the remotes provider.
    """

    client: Optional[APIClient] = None
    app: Optional[str] = None
    cwd: Path = field(default_factory=Path.cwd)
    git: Git = field(default_factory=Git)


@dataclass
class Completion:
    """One completion provider.

    Attributes:
        options: Coroutine returning the values.
        cache_duration: Seconds the values stay cached; ``None`` disables
            caching.
        cache_key: Builds the cache key from the context. An empty key
            means "do not cache this call". Defaults to the provider name.
    """

    options: Callable[[CompletionContext], Awaitable[list[str]]]
    cache_duration: Optional[int] = None
    cache_key: Optional[Callable[[CompletionContext], str]] = None


async def fetch_names(client: APIClient, resource: str) -> list[str]:
    """GET ``/<resource>`` and return the sorted ``name`` of every item."""
    body = (await client.get(f"/{resource}")).body
    if isinstance(body, str):
        body = json.loads(body)
    return sorted(
        item["name"] for item in body or [] if isinstance(item, dict) and item.get("name")
    )


def _api(resource: str) -> Callable[[CompletionContext], Awaitable[list[str]]]:
    async def options(ctx: CompletionContext) -> list[str]:
        if ctx.client is None:
            raise InvalidUsageError(f"Completing {resource} requires an API client")
        return await fetch_names(ctx.client, resource)

    return options


def _app_scoped(resource: str) -> Callable[[CompletionContext], Awaitable[list[str]]]:
    async def options(ctx: CompletionContext) -> list[str]:
        if not ctx.app:
            return []
        return await _api(f"apps/{ctx.app}/{resource}")(ctx)

    return options


def _app_key(resource: str) -> Callable[[CompletionContext], str]:
    return lambda ctx: f"{ctx.app}_{resource}" if ctx.app else ""


def _static(values: list[str]) -> Callable[[CompletionContext], Awaitable[list[str]]]:
    async def options(ctx: CompletionContext) -> list[str]:
        return list(values)

    return options


async def _files(ctx: CompletionContext) -> list[str]:
    return sorted(os.listdir(ctx.cwd))


async def _process_types(ctx: CompletionContext) -> list[str]:
    """Process types declared in ``Procfile``; none when there is no Procfile."""
    try:
        text = (ctx.cwd / "Procfile").read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    types: list[str] = []
    for line in text.splitlines():
        match = _PROCESS_TYPE.match(line)
        if match:
            types.append(match.group(1))
    return types


async def _remotes(ctx: CompletionContext) -> list[str]:
    return [remote.name for remote in ctx.git.remotes]


COMPLETIONS: dict[str, Completion] = {
    "apps": Completion(_api("apps"), ONE_DAY),
    "addons": Completion(_app_scoped("addons"), ONE_DAY, _app_key("addons")),
    "dynos": Completion(_app_scoped("dynos"), ONE_DAY, _app_key("dynos")),
    "buildpacks": Completion(_static(BUILDPACKS)),
    "dyno-sizes": Completion(_api("dyno-sizes"), ONE_DAY * 90),
    "files": Completion(_files),
    "pipelines": Completion(_api("pipelines"), ONE_DAY),
    "process-types": Completion(_process_types),
    "regions": Completion(_api("regions"), ONE_DAY * 7),
    "remotes": Completion(_remotes),
    "roles": Completion(_static(ROLES)),
    "scopes": Completion(_static(SCOPES)),
    "spaces": Completion(_api("spaces"), ONE_DAY),
    "stacks": Completion(_api("stacks"), ONE_DAY),
    "stages": Completion(_static(STAGES)),
    "teams": Completion(_api("teams"), ONE_DAY),
}
"""All providers by name."""


async def complete(
    name: str,
    ctx: CompletionContext,
    cache: Optional[CompletionCache] = None,
    refresh: bool = False,
) -> list[str]:
    """Return the completion values of provider *name*.

    Cached values are returned while fresh; otherwise the provider runs
    and, when it has a cache duration, its result is stored. With
    *refresh* the cached entry is dropped and fetched again.

    Raises:
        InvalidUsageError: If no provider is called *name*.
    """
    try:
        provider = COMPLETIONS[name]
    except KeyError:
        raise InvalidUsageError(
            f"Unknown completion '{name}'. Choose from: {', '.join(sorted(COMPLETIONS))}"
        ) from None

    if provider.cache_duration is None or cache is None:
        return await provider.options(ctx)

    key = provider.cache_key(ctx) if provider.cache_key else name
    if not key:
        return await provider.options(ctx)

    if refresh:
        cache.invalidate(key)
    cached = cache.get(key)
    if cached is not None:
        logger.debug("completion cache hit for %s", key)
        return cached
    values = await provider.options(ctx)
    cache.set(key, values, ttl=provider.cache_duration)
    return values
