"""Tests for session teardown (logout revocation)."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from heroku_command.auth.session import SessionTeardown
from heroku_command.client import HTTPError


def _json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=data)


def _authorizations(*pairs: tuple[str, str]) -> list[dict[str, Any]]:
    return [{"id": auth_id, "access_token": {"token": token}} for auth_id, token in pairs]


def _router(
    routes: dict[str, Callable[[], httpx.Response]], log: list[str]
) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        key = f"{request.method} {request.url.path}"
        log.append(key)
        if key not in routes:
            raise AssertionError(f"unexpected request {key}")
        return routes[key]()

    return handler


def _teardown(client) -> SessionTeardown:
    return SessionTeardown(client.transport, client.vars, client.resolver)


class TestLogout:
    @pytest.mark.asyncio
    async def test_no_token_makes_no_requests(self, make_client) -> None:
        log: list[str] = []
        client = make_client(_router({}, log))
        await _teardown(client).logout()
        assert log == []

    @pytest.mark.asyncio
    async def test_deletes_session_and_matching_authorizations(self, make_client, write_netrc) -> None:
        write_netrc("mytoken")
        log: list[str] = []
        routes = {
            "DELETE /oauth/sessions/~": lambda: _json_response({}),
            "GET /oauth/authorizations": lambda: _json_response(
                _authorizations(("a1", "mytoken"), ("a2", "other"), ("a3", "mytoken"))
            ),
            "GET /oauth/authorizations/~": lambda: _json_response(
                {"id": "default", "access_token": {"token": "dashboard"}}
            ),
            "DELETE /oauth/authorizations/a1": lambda: _json_response({}),
            "DELETE /oauth/authorizations/a3": lambda: _json_response({}),
        }
        client = make_client(_router(routes, log))
        await _teardown(client).logout()

        assert "DELETE /oauth/sessions/~" in log
        assert "DELETE /oauth/authorizations/a1" in log
        assert "DELETE /oauth/authorizations/a3" in log
        assert "DELETE /oauth/authorizations/a2" not in log

    @pytest.mark.asyncio
    async def test_default_token_is_kept(self, make_client) -> None:
        log: list[str] = []
        routes = {
            "DELETE /oauth/sessions/~": lambda: _json_response({}),
            "GET /oauth/authorizations": lambda: _json_response(_authorizations(("a1", "dash"))),
            "GET /oauth/authorizations/~": lambda: _json_response(
                {"id": "a1", "access_token": {"token": "dash"}}
            ),
        }
        client = make_client(_router(routes, log))
        await _teardown(client).logout("dash")

        assert "DELETE /oauth/sessions/~" in log
        assert not any(entry.startswith("DELETE /oauth/authorizations") for entry in log)

    @pytest.mark.asyncio
    async def test_uses_the_given_token(self, make_client, write_netrc) -> None:
        write_netrc("current")
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["authorization"])
            if request.url.path == "/oauth/authorizations":
                return _json_response([])
            if request.url.path == "/oauth/authorizations/~":
                return _json_response({"id": "d"})
            return _json_response({})

        client = make_client(handler)
        await _teardown(client).logout("previous")
        assert set(seen) == {"Bearer previous"}

    @pytest.mark.asyncio
    async def test_already_revoked_is_success(self, make_client) -> None:
        log: list[str] = []
        routes = {
            "DELETE /oauth/sessions/~": lambda: _json_response(
                {"id": "not_found", "resource": "session", "message": "gone"}, 404
            ),
            "GET /oauth/authorizations": lambda: _json_response(
                {"id": "unauthorized", "message": "Invalid credentials provided."}, 401
            ),
        }
        client = make_client(_router(routes, log))
        await _teardown(client).logout("stale")
        assert sorted(log) == ["DELETE /oauth/sessions/~", "GET /oauth/authorizations"]

    @pytest.mark.asyncio
    async def test_unauthorized_authorization_delete_is_success(self, make_client) -> None:
        log: list[str] = []
        routes = {
            "DELETE /oauth/sessions/~": lambda: _json_response({}),
            "GET /oauth/authorizations": lambda: _json_response(_authorizations(("a1", "tok"))),
            "GET /oauth/authorizations/~": lambda: _json_response(
                {"id": "default", "access_token": {"token": "dashboard"}}
            ),
            "DELETE /oauth/authorizations/a1": lambda: _json_response(
                {"id": "unauthorized", "message": "Invalid credentials provided."}, 401
            ),
        }
        client = make_client(_router(routes, log))
        await _teardown(client).logout("tok")
        assert "DELETE /oauth/authorizations/a1" in log

    @pytest.mark.asyncio
    async def test_authorization_delete_error_propagates(self, make_client) -> None:
        routes = {
            "DELETE /oauth/sessions/~": lambda: _json_response({}),
            "GET /oauth/authorizations": lambda: _json_response(_authorizations(("a1", "tok"))),
            "GET /oauth/authorizations/~": lambda: _json_response({"id": "default"}),
            "DELETE /oauth/authorizations/a1": lambda: _json_response({"id": "forbidden"}, 403),
        }
        client = make_client(_router(routes, []))
        with pytest.raises(HTTPError) as exc_info:
            await _teardown(client).logout("tok")
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_default_authorization(self, make_client) -> None:
        log: list[str] = []
        routes = {
            "DELETE /oauth/sessions/~": lambda: _json_response(
                {"id": "unauthorized", "message": "nope"}, 401
            ),
            "GET /oauth/authorizations": lambda: _json_response(_authorizations(("a1", "tok"))),
            "GET /oauth/authorizations/~": lambda: _json_response(
                {"id": "not_found", "resource": "authorization", "message": "none"}, 404
            ),
            "DELETE /oauth/authorizations/a1": lambda: _json_response({}),
        }
        client = make_client(_router(routes, log))
        await _teardown(client).logout("tok")
        assert "DELETE /oauth/authorizations/a1" in log

    @pytest.mark.asyncio
    async def test_genuine_error_propagates_after_both_settle(self, make_client) -> None:
        log: list[str] = []
        routes = {
            "DELETE /oauth/sessions/~": lambda: _json_response({"id": "internal"}, 500),
            "GET /oauth/authorizations": lambda: _json_response([]),
            "GET /oauth/authorizations/~": lambda: _json_response({"id": "d"}),
        }
        client = make_client(_router(routes, log))
        with pytest.raises(HTTPError) as exc_info:
            await _teardown(client).logout("tok")

        assert exc_info.value.status_code == 500
        assert "GET /oauth/authorizations/~" in log

    @pytest.mark.asyncio
    async def test_session_404_for_other_resource_is_an_error(self, make_client) -> None:
        routes = {
            "DELETE /oauth/sessions/~": lambda: _json_response(
                {"id": "not_found", "resource": "app"}, 404
            ),
            "GET /oauth/authorizations": lambda: _json_response([]),
            "GET /oauth/authorizations/~": lambda: _json_response({"id": "d"}),
        }
        client = make_client(_router(routes, []))
        with pytest.raises(HTTPError):
            await _teardown(client).logout("tok")
