"""Tests for the Figma REST client against a mocked transport."""

import json

import httpx
import pytest

from figma_for_jira.clients.figma import FigmaClient
from figma_for_jira.clients.validation import UnexpectedResponseError
from figma_for_jira.config import FigmaConfig, FigmaOAuth2Config

CONFIG = FigmaConfig(
    web_base_url="https://www.figma.test",
    api_base_url="https://api.figma.test",
    oauth2=FigmaOAuth2Config(client_id="client-id", client_secret="client-secret"),
)


def _client(handler) -> FigmaClient:
    return FigmaClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)), CONFIG)


class TestOAuth2:
    async def test_get_oauth2_token_posts_form(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "user_id": "123",
                    "access_token": "figd_a",
                    "refresh_token": "figd_r",
                    "expires_in": 7776000,
                },
            )

        token = await _client(handler).get_oauth2_token("code-1", "https://app.test/cb")

        assert token.access_token == "figd_a"
        request = seen[0]
        assert str(request.url) == "https://www.figma.test/api/oauth/token"
        form = dict(pair.split("=", 1) for pair in request.content.decode().split("&"))
        assert form["code"] == "code-1"
        assert form["grant_type"] == "authorization_code"
        assert form["client_secret"] == "client-secret"

    async def test_refresh_without_refresh_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/oauth/refresh"
            return httpx.Response(200, json={"access_token": "figd_b", "expires_in": 60})

        refreshed = await _client(handler).refresh_oauth2_token("figd_r")

        assert refreshed.access_token == "figd_b"
        assert refreshed.refresh_token is None


class TestRestCalls:
    async def test_me_uses_bearer_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer figd_a"
            return httpx.Response(
                200,
                json={"id": "1", "email": "a@b.test", "handle": "Ann", "img_url": "https://i"},
            )

        me = await _client(handler).me("figd_a")

        assert me.handle == "Ann"

    async def test_me_unauthorized_raises(self):
        client = _client(lambda request: httpx.Response(403, json={"status": 403}))

        with pytest.raises(httpx.HTTPStatusError):
            await client.me("figd_a")

    async def test_get_file_with_node(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/files/abc"
            assert request.url.params["ids"] == "1:2"
            assert request.url.params["node_last_modified"] == "true"
            return httpx.Response(
                200,
                json={
                    "name": "Design",
                    "version": "42",
                    "lastModified": "2026-01-01T00:00:00Z",
                    "editorType": "figma",
                    "document": {
                        "id": "0:0",
                        "name": "Document",
                        "type": "DOCUMENT",
                        "children": [
                            {
                                "id": "1:2",
                                "name": "Frame",
                                "type": "FRAME",
                                "devStatus": {"type": "READY_FOR_DEV"},
                            }
                        ],
                    },
                },
            )

        file = await _client(handler).get_file("abc", "figd_a", node_ids=["1:2"])

        assert file.document.children[0].dev_status.type == "READY_FOR_DEV"

    async def test_unexpected_shape(self):
        client = _client(lambda request: httpx.Response(200, json={"name": "no document"}))

        with pytest.raises(UnexpectedResponseError) as exc_info:
            await client.get_file("abc", "figd_a")
        assert exc_info.value.shape == "FileResponse"
        assert exc_info.value.errors

    async def test_create_webhook_body(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            seen.append(body)
            return httpx.Response(
                200,
                json={
                    "id": "wh-1",
                    "team_id": body["team_id"],
                    "event_type": body["event_type"],
                    "endpoint": body["endpoint"],
                    "status": "ACTIVE",
                },
            )

        webhook = await _client(handler).create_webhook(
            "team-1", "https://app.test/figma/webhook", "pass", "desc", "figd_a"
        )

        assert webhook.id == "wh-1"
        assert seen[0]["event_type"] == "FILE_UPDATE"
        assert seen[0]["passcode"] == "pass"

    async def test_get_dev_resources_filters_nodes(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/files/abc/dev_resources"
            assert request.url.params["node_ids"] == "1:2"
            return httpx.Response(200, json={"dev_resources": []})

        resources = await _client(handler).get_dev_resources("abc", "figd_a", ["1:2"])

        assert resources.dev_resources == []

    async def test_custom_validator(self):
        calls: list[str] = []

        def validate(shape, data):
            calls.append(shape.__name__)
            return data

        client = FigmaClient(
            httpx.AsyncClient(
                transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"x": 1}))
            ),
            CONFIG,
            validate=validate,
        )

        assert await client.get_team_projects("team-1", "figd_a") == {"x": 1}
        assert calls == ["GetTeamProjectsResponse"]
