"""Tests for the Directus client against an in-memory httpx transport."""

import asyncio
import json

import httpx
import pytest

from app.services.directus import (
    DirectusClient,
    DirectusError,
    authentication,
    describe_error,
    graphql,
    rest,
)

_URL = "http://cms.test"

_LOGIN_REPLY = {"data": {"access_token": "token-1", "refresh_token": "refresh-1", "expires": 900000}}


class _Backend:
    """Fake Directus server that records every request it receives."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list = []

    @property
    def paths(self) -> list:
        return [r.url.path for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.routes[request.url.path]
        if callable(reply):
            return reply(request)
        status, body = reply
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


def _client(backend: _Backend, auto_refresh: bool = True) -> DirectusClient:
    return (
        DirectusClient(_URL, transport=httpx.MockTransport(backend))
        .with_(authentication("json", auto_refresh=auto_refresh))
        .with_(rest())
        .with_(graphql())
    )


class TestLogin:
    def test_login_posts_credentials_and_keeps_token(self):
        backend = _Backend({"/auth/login": (200, _LOGIN_REPLY)})
        client = _client(backend)

        asyncio.run(client.login("admin@example.com", "secret"))

        assert backend.paths == ["/auth/login"]
        assert json.loads(backend.requests[0].content) == {
            "email": "admin@example.com",
            "password": "secret",
            "mode": "json",
        }
        assert client.get_token() == "token-1"

    def test_rejected_credentials_raise_directus_error(self):
        backend = _Backend(
            {"/auth/login": (401, {"errors": [{"message": "Invalid user credentials."}]})}
        )
        client = _client(backend)

        with pytest.raises(DirectusError) as exc_info:
            asyncio.run(client.login("admin@example.com", "wrong"))

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid user credentials."
        assert client.get_token() is None

    def test_login_requires_authentication_capability(self):
        client = DirectusClient(_URL).with_(graphql())
        with pytest.raises(RuntimeError, match="authentication"):
            asyncio.run(client.login("a", "b"))

    def test_unsupported_auth_mode_is_rejected(self):
        with pytest.raises(ValueError):
            authentication("cookie")


class TestTokens:
    def test_expiring_token_is_refreshed_before_query(self):
        backend = _Backend(
            {
                "/auth/login": (200, {"data": {"access_token": "old", "refresh_token": "r1", "expires": 1000}}),
                "/auth/refresh": (200, {"data": {"access_token": "new", "refresh_token": "r2", "expires": 900000}}),
                "/graphql": (200, {"data": {"global": {}}}),
            }
        )
        client = _client(backend)

        async def run():
            await client.login("a", "b")
            await client.query("{ global { title } }")

        asyncio.run(run())

        assert backend.paths == ["/auth/login", "/auth/refresh", "/graphql"]
        assert json.loads(backend.requests[1].content)["refresh_token"] == "r1"
        assert backend.requests[2].headers["Authorization"] == "Bearer new"

    def test_stop_refreshing_keeps_current_token(self):
        backend = _Backend(
            {
                "/auth/login": (200, {"data": {"access_token": "old", "refresh_token": "r1", "expires": 1000}}),
                "/graphql": (200, {"data": {}}),
            }
        )
        client = _client(backend)

        async def run():
            await client.login("a", "b")
            client.stop_refreshing()
            await client.query("{ global { title } }")

        asyncio.run(run())

        assert backend.paths == ["/auth/login", "/graphql"]
        assert backend.requests[1].headers["Authorization"] == "Bearer old"

    def test_set_token_is_sent_as_bearer(self):
        backend = _Backend({"/graphql": (200, {"data": {}})})
        client = _client(backend)
        client.set_token("static-token")

        asyncio.run(client.query("{ global { title } }"))

        assert client.get_token() == "static-token"
        assert backend.requests[0].headers["Authorization"] == "Bearer static-token"

    def test_refresh_without_login_fails(self):
        client = _client(_Backend({}))
        with pytest.raises(DirectusError):
            asyncio.run(client.refresh())

    def test_logout_clears_tokens(self):
        backend = _Backend({"/auth/login": (200, _LOGIN_REPLY), "/auth/logout": (204, None)})
        client = _client(backend)

        async def run():
            await client.login("a", "b")
            await client.logout()

        asyncio.run(run())

        assert backend.paths == ["/auth/login", "/auth/logout"]
        assert client.get_token() is None


class TestQuery:
    def test_query_returns_data_member(self):
        backend = _Backend({"/graphql": (200, {"data": {"global": {"title": "Site"}}})})
        client = _client(backend)

        data = asyncio.run(client.query("{ global { title } }"))

        assert data == {"global": {"title": "Site"}}
        assert json.loads(backend.requests[0].content) == {"query": "{ global { title } }"}

    def test_variables_are_sent(self):
        backend = _Backend({"/graphql": (200, {"data": {}})})
        client = _client(backend)

        asyncio.run(client.query("query ($s: String) { page { slug } }", {"s": "about"}))

        assert json.loads(backend.requests[0].content)["variables"] == {"s": "about"}

    def test_system_scope_uses_system_endpoint(self):
        backend = _Backend({"/graphql/system": (200, {"data": {"users_me": {}}})})
        client = _client(backend)

        asyncio.run(client.query("{ users_me { id } }", scope="system"))

        assert backend.paths == ["/graphql/system"]

    def test_graphql_errors_raise(self):
        backend = _Backend(
            {"/graphql": (200, {"errors": [{"message": "Cannot query field \"nope\""}]})}
        )
        client = _client(backend)

        with pytest.raises(DirectusError, match="Cannot query field"):
            asyncio.run(client.query("{ nope }"))

    def test_error_status_raises(self):
        backend = _Backend({"/graphql": (503, None)})
        client = _client(backend)

        with pytest.raises(DirectusError) as exc_info:
            asyncio.run(client.query("{ global { title } }"))

        assert exc_info.value.status_code == 503

    def test_query_requires_graphql_capability(self):
        client = DirectusClient(_URL).with_(rest())
        with pytest.raises(RuntimeError, match="graphql"):
            asyncio.run(client.query("{ global { title } }"))


class TestRest:
    def test_request_returns_data_member(self):
        backend = _Backend({"/items/page": (200, {"data": [{"slug": "about"}]})})
        client = _client(backend)

        data = asyncio.run(client.request("get", "/items/page", params={"limit": 1}))

        assert data == [{"slug": "about"}]
        assert backend.requests[0].method == "GET"
        assert backend.requests[0].url.params["limit"] == "1"


class TestDescribeError:
    def test_directus_error_is_serialized(self):
        exc = DirectusError("Invalid user credentials.", status_code=401)
        assert json.loads(describe_error(exc)) == {
            "message": "Invalid user credentials.",
            "errors": [],
            "status_code": 401,
        }

    def test_other_errors_are_serialized_by_type(self):
        exc = httpx.ConnectError("connection refused")
        assert json.loads(describe_error(exc)) == {
            "type": "ConnectError",
            "message": "connection refused",
        }
