"""Tests for the Jira REST client against a mocked transport."""

import json

import httpx
import jwt
import pytest

from figma_for_jira.auth.connect_jwt import CanonicalRequest, create_query_string_hash
from figma_for_jira.clients.jira import JiraClient


def _client(handler, now) -> JiraClient:
    return JiraClient(
        httpx.AsyncClient(transport=httpx.MockTransport(handler)), clock=lambda: now
    )


def _token(request: httpx.Request) -> str:
    scheme, _, token = request.headers["Authorization"].partition(" ")
    assert scheme == "JWT"
    return token


class TestSigning:
    async def test_request_signed_for_its_path(self, installation, now):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"id": "10001", "key": "PROJ-1", "fields": {"summary": "Fix it"}}
            )

        issue = await _client(handler, now).get_issue("10001", installation)

        assert issue.key == "PROJ-1"
        assert issue.fields.summary == "Fix it"
        claims = jwt.decode(
            _token(seen[0]),
            installation.shared_secret,
            algorithms=["HS256"],
            options={"verify_exp": False},
        )
        assert claims["iss"] == installation.key
        assert claims["qsh"] == create_query_string_hash(
            CanonicalRequest("GET", "/rest/api/3/issue/10001", {})
        )


class TestSubmitDesigns:
    async def test_posts_bulk_payload(self, installation, now):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/rest/designs/1.0/bulk"
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "acceptedEntities": [{"designId": "abc/1:2"}],
                    "rejectedEntities": [],
                },
            )

        response = await _client(handler, now).submit_designs([{"id": "abc/1:2"}], installation)

        assert seen == [{"designs": [{"id": "abc/1:2"}]}]
        assert response.accepted_entities[0].design_id == "abc/1:2"
        assert response.unknown_issue_keys is None

    async def test_server_error_raises(self, installation, now):
        client = _client(lambda request: httpx.Response(503), now)

        with pytest.raises(httpx.HTTPStatusError):
            await client.submit_designs([], installation)


class TestIssueProperties:
    async def test_missing_property_is_none(self, installation, now):
        client = _client(lambda request: httpx.Response(404), now)

        assert await client.get_issue_property("10001", "attached-design-url", installation) is None

    async def test_property_value(self, installation, now):
        client = _client(
            lambda request: httpx.Response(
                200, json={"key": "attached-design-url", "value": "https://www.figma.com/file/abc"}
            ),
            now,
        )

        prop = await client.get_issue_property("10001", "attached-design-url", installation)

        assert prop.value == "https://www.figma.com/file/abc"

    async def test_delete_missing_property_is_false(self, installation, now):
        client = _client(lambda request: httpx.Response(404), now)

        assert await client.delete_issue_property("10001", "k", installation) is False

    async def test_set_property_puts_json(self, installation, now):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        await _client(handler, now).set_issue_property("10001", "k", "v", installation)

        assert seen[0].method == "PUT"
        assert json.loads(seen[0].content) == "v"


class TestPermissionsAndAppProperties:
    async def test_check_permissions(self, installation, now):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body == {"accountId": "user-1", "globalPermissions": ["ADMINISTER"]}
            return httpx.Response(200, json={"globalPermissions": ["ADMINISTER"]})

        response = await _client(handler, now).check_permissions(
            "user-1", ["ADMINISTER"], installation
        )

        assert response.global_permissions == ["ADMINISTER"]

    async def test_set_app_property_path(self, installation, now):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(204)

        await _client(handler, now).set_app_property(
            "is-configured", {"status": "CONFIGURED"}, installation
        )

        assert seen == [
            "/rest/atlassian-connect/1/addons/com.figma.jira-addon/properties/is-configured"
        ]
