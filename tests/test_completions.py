"""Tests for completion providers and their caching."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
import pytest

from heroku_command.cache import CompletionCache
from heroku_command.completions import (
    BUILDPACKS,
    COMPLETIONS,
    ONE_DAY,
    CompletionContext,
    complete,
    fetch_names,
)
from heroku_command.exceptions import InvalidUsageError
from heroku_command.git import Remote


def _json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=data)


class _Names:
    """Handler answering every GET with the same names, counting calls."""

    def __init__(self, *names: str) -> None:
        self.names = names
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        return _json_response([{"name": n, "id": i} for i, n in enumerate(self.names)])


@pytest.fixture()
def cache(tmp_path):
    c = CompletionCache(tmp_path / "cache", "https://api.heroku.com")
    yield c
    c.close()


class TestFetchNames:
    @pytest.mark.asyncio
    async def test_sorted_names(self, make_client) -> None:
        client = make_client(_Names("zeta", "alpha"))
        assert await fetch_names(client, "apps") == ["alpha", "zeta"]

    @pytest.mark.asyncio
    async def test_skips_items_without_name(self, make_client) -> None:
        client = make_client(lambda r: _json_response([{"name": "a"}, {"id": "x"}, "junk"]))
        assert await fetch_names(client, "apps") == ["a"]

    @pytest.mark.asyncio
    async def test_text_body_is_parsed(self, make_client) -> None:
        client = make_client(
            lambda r: httpx.Response(200, text='[{"name": "b"}, {"name": "a"}]')
        )
        assert await fetch_names(client, "regions") == ["a", "b"]


class TestProviders:
    def test_cache_durations(self) -> None:
        assert COMPLETIONS["apps"].cache_duration == ONE_DAY
        assert COMPLETIONS["dyno-sizes"].cache_duration == ONE_DAY * 90
        assert COMPLETIONS["regions"].cache_duration == ONE_DAY * 7
        assert COMPLETIONS["files"].cache_duration is None

    @pytest.mark.asyncio
    async def test_api_provider(self, make_client) -> None:
        handler = _Names("eu", "us")
        ctx = CompletionContext(client=make_client(handler))
        assert await complete("regions", ctx) == ["eu", "us"]
        assert handler.paths == ["/regions"]

    @pytest.mark.asyncio
    async def test_api_provider_needs_client(self) -> None:
        with pytest.raises(InvalidUsageError, match="requires an API client"):
            await complete("apps", CompletionContext())

    @pytest.mark.asyncio
    async def test_app_scoped_provider(self, make_client) -> None:
        handler = _Names("web.1", "worker.1")
        ctx = CompletionContext(client=make_client(handler), app="myapp")
        assert await complete("dynos", ctx) == ["web.1", "worker.1"]
        assert handler.paths == ["/apps/myapp/dynos"]

    @pytest.mark.asyncio
    async def test_app_scoped_without_app(self, make_client) -> None:
        handler = _Names("x")
        ctx = CompletionContext(client=make_client(handler))
        assert await complete("addons", ctx) == []
        assert handler.paths == []

    @pytest.mark.asyncio
    async def test_static_provider(self) -> None:
        values = await complete("buildpacks", CompletionContext())
        assert values == BUILDPACKS
        values.append("mutated")
        assert "mutated" not in BUILDPACKS

    @pytest.mark.asyncio
    async def test_files(self, tmp_path: Path) -> None:
        project = tmp_path / "project"
        project.mkdir()
        (project / "b.txt").write_text("")
        (project / "a.txt").write_text("")
        values = await complete("files", CompletionContext(cwd=project))
        assert values == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_process_types(self, tmp_path: Path) -> None:
        (tmp_path / "Procfile").write_text(
            "web: gunicorn app:app\nworker: celery -A tasks\n\n# comment\nrelease: ./migrate\n"
        )
        values = await complete("process-types", CompletionContext(cwd=tmp_path))
        assert values == ["web", "worker", "release"]

    @pytest.mark.asyncio
    async def test_process_types_without_procfile(self, tmp_path: Path) -> None:
        assert await complete("process-types", CompletionContext(cwd=tmp_path)) == []

    @pytest.mark.asyncio
    async def test_remotes(self) -> None:
        class _Git:
            remotes = [Remote("heroku", "https://git.heroku.com/a.git"), Remote("origin", "o")]

        values = await complete("remotes", CompletionContext(git=_Git()))  # type: ignore[arg-type]
        assert values == ["heroku", "origin"]

    @pytest.mark.asyncio
    async def test_unknown_provider(self) -> None:
        with pytest.raises(InvalidUsageError, match="Unknown completion 'nope'"):
            await complete("nope", CompletionContext())


class TestCaching:
    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, make_client, cache) -> None:
        handler = _Names("myapp")
        ctx = CompletionContext(client=make_client(handler))

        assert await complete("apps", ctx, cache=cache) == ["myapp"]
        assert await complete("apps", ctx, cache=cache) == ["myapp"]
        assert handler.paths == ["/apps"]
        assert cache.get("apps") == ["myapp"]

    @pytest.mark.asyncio
    async def test_app_scoped_key(self, make_client, cache) -> None:
        handler = _Names("web.1")
        ctx = CompletionContext(client=make_client(handler), app="myapp")

        await complete("dynos", ctx, cache=cache)
        assert cache.get("myapp_dynos") == ["web.1"]

    @pytest.mark.asyncio
    async def test_empty_key_skips_cache(self, make_client, cache) -> None:
        ctx = CompletionContext(client=make_client(_Names("x")))
        assert await complete("dynos", ctx, cache=cache) == []
        assert cache.stats()["size"] == 0

    @pytest.mark.asyncio
    async def test_uncached_provider_never_stored(self, cache, tmp_path: Path) -> None:
        await complete("files", CompletionContext(cwd=tmp_path), cache=cache)
        assert cache.stats()["size"] == 0

    @pytest.mark.asyncio
    async def test_without_cache_always_fetches(self, make_client) -> None:
        handler = _Names("myapp")
        ctx = CompletionContext(client=make_client(handler))
        await complete("apps", ctx)
        await complete("apps", ctx)
        assert handler.paths == ["/apps", "/apps"]

    @pytest.mark.asyncio
    async def test_refresh_replaces_cached_values(self, make_client, cache) -> None:
        cache.set("apps", ["stale"], ttl=ONE_DAY)
        handler = _Names("fresh")
        ctx = CompletionContext(client=make_client(handler))

        assert await complete("apps", ctx, cache=cache, refresh=True) == ["fresh"]
        assert cache.get("apps") == ["fresh"]
        assert handler.paths == ["/apps"]
