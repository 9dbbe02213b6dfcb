"""Tests for the Jira REST client."""

import base64
import json

import httpx
import pytest

from jirabridge.core.client import Credentials, JiraClient
from jirabridge.core.errors import ApiError


@pytest.fixture
def credentials():
    return Credentials(
        base_url="https://example.atlassian.net/",
        email="me@example.com",
        api_token="tok",
    )


def _client(credentials, handler):
    return JiraClient(credentials, transport=httpx.MockTransport(handler))


class TestCredentials:
    def test_api_url_strips_trailing_slash(self, credentials):
        assert credentials.api_url == "https://example.atlassian.net/rest/api/3"

    def test_basic_auth_header(self, credentials):
        expected = base64.b64encode(b"me@example.com:tok").decode()
        assert credentials.authorization == f"Basic {expected}"


class TestJiraClient:
    async def test_get_sends_auth_and_json_headers(self, credentials):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"accountId": "abc"})

        async with _client(credentials, handler) as client:
            data = await client.get("/myself")

        assert data == {"accountId": "abc"}
        request = seen[0]
        assert request.method == "GET"
        assert str(request.url) == "https://example.atlassian.net/rest/api/3/myself"
        assert request.headers["Authorization"] == credentials.authorization
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Content-Type"] == "application/json"

    async def test_post_encodes_json_body(self, credentials):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"id": "1"})

        async with _client(credentials, handler) as client:
            await client.post("/issue", {"fields": {"summary": "x"}})

        assert bodies == [{"fields": {"summary": "x"}}]

    async def test_bare_string_body(self, credentials):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request.content)
            return httpx.Response(204)

        async with _client(credentials, handler) as client:
            await client.post("/issue/PROJ-1/watchers", "acc-1")

        assert bodies == [b'"acc-1"']

    async def test_query_string_in_path(self, credentials):
        urls = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url))
            return httpx.Response(200, json={})

        async with _client(credentials, handler) as client:
            await client.get("/issue/PROJ-1?fields=summary%2Cstatus")

        assert urls == ["https://example.atlassian.net/rest/api/3/issue/PROJ-1?fields=summary%2Cstatus"]

    async def test_no_content_returns_none(self, credentials):
        async with _client(credentials, lambda r: httpx.Response(204)) as client:
            assert await client.put("/issue/PROJ-1", {"fields": {}}) is None

    async def test_empty_body_returns_none(self, credentials):
        async with _client(credentials, lambda r: httpx.Response(200, content=b"")) as client:
            assert await client.delete("/issue/PROJ-1") is None

    async def test_error_status_raises_api_error(self, credentials):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text='{"errorMessages":["Issue does not exist"]}')

        async with _client(credentials, handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get("/issue/NOPE-1")

        err = exc_info.value
        assert err.status_code == 404
        assert "Issue does not exist" in err.body
        assert str(err).startswith("Jira API error (404):")

    async def test_no_retry_on_server_error(self, credentials):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        async with _client(credentials, handler) as client:
            with pytest.raises(ApiError):
                await client.get("/myself")

        assert len(calls) == 1
