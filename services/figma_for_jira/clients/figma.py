"""Figma REST API client.

Covers the OAuth2 token endpoints and the handful of REST calls the app needs.
All calls use bearer authentication with the user's access token. Non-2xx
responses raise ``httpx.HTTPStatusError``; callers decide which statuses are
expected.

See https://www.figma.com/developers/api
"""

from typing import Any

import httpx
from pydantic import BaseModel, Field

from figma_for_jira.clients.validation import ResponseValidator, validate_response
from figma_for_jira.config import FigmaConfig


# --- Response shapes ---


class GetOAuth2TokenResponse(BaseModel):
    user_id: str | int | None = None
    access_token: str
    refresh_token: str
    expires_in: int


class RefreshOAuth2TokenResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int


class MeResponse(BaseModel):
    id: str
    email: str
    handle: str
    img_url: str


class NodeDevStatus(BaseModel):
    type: str


class Node(BaseModel):
    id: str
    name: str
    type: str
    dev_status: NodeDevStatus | None = Field(default=None, alias="devStatus")
    last_modified: str | None = Field(default=None, alias="lastModified")
    children: list["Node"] = Field(default_factory=list)


class FileResponse(BaseModel):
    name: str
    version: str
    last_modified: str = Field(alias="lastModified")
    editor_type: str | None = Field(default=None, alias="editorType")
    document: Node


class DevResource(BaseModel):
    id: str
    name: str
    url: str
    file_key: str
    node_id: str


class CreateDevResourceError(BaseModel):
    file_key: str | None = None
    node_id: str | None = None
    error: str


class CreateDevResourcesResponse(BaseModel):
    links_created: list[DevResource] = Field(default_factory=list)
    errors: list[CreateDevResourceError] = Field(default_factory=list)


class GetDevResourcesResponse(BaseModel):
    dev_resources: list[DevResource]


class CreateWebhookResponse(BaseModel):
    id: str
    team_id: str
    event_type: str
    endpoint: str
    status: str
    description: str | None = None
    protocol_version: str | None = None


class TeamProject(BaseModel):
    id: str
    name: str


class GetTeamProjectsResponse(BaseModel):
    name: str
    projects: list[TeamProject] = Field(default_factory=list)


# --- Client ---


class FigmaClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        config: FigmaConfig,
        validate: ResponseValidator = validate_response,
    ) -> None:
        self._http = http
        self._config = config
        self._validate = validate

    @property
    def _api(self) -> str:
        return self._config.api_base_url.rstrip("/")

    @property
    def _web(self) -> str:
        return self._config.web_base_url.rstrip("/")

    @staticmethod
    def _auth(access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def _request(
        self, method: str, url: str, access_token: str, **kwargs: Any
    ) -> httpx.Response:
        resp = await self._http.request(method, url, headers=self._auth(access_token), **kwargs)
        resp.raise_for_status()
        return resp

    # --- OAuth2 ---

    async def get_oauth2_token(self, code: str, redirect_uri: str) -> GetOAuth2TokenResponse:
        oauth2 = self._config.oauth2
        resp = await self._http.post(
            f"{self._web}/api/oauth/token",
            data={
                "client_id": oauth2.client_id,
                "client_secret": oauth2.client_secret,
                "redirect_uri": redirect_uri,
                "code": code,
                "grant_type": "authorization_code",
            },
        )
        resp.raise_for_status()
        return self._validate(GetOAuth2TokenResponse, resp.json())

    async def refresh_oauth2_token(self, refresh_token: str) -> RefreshOAuth2TokenResponse:
        oauth2 = self._config.oauth2
        resp = await self._http.post(
            f"{self._web}/api/oauth/refresh",
            data={
                "client_id": oauth2.client_id,
                "client_secret": oauth2.client_secret,
                "refresh_token": refresh_token,
            },
        )
        resp.raise_for_status()
        return self._validate(RefreshOAuth2TokenResponse, resp.json())

    # --- REST ---

    async def me(self, access_token: str) -> MeResponse:
        resp = await self._request("GET", f"{self._api}/v1/me", access_token)
        return self._validate(MeResponse, resp.json())

    async def get_file(
        self,
        file_key: str,
        access_token: str,
        node_ids: list[str] | None = None,
        depth: int | None = None,
    ) -> FileResponse:
        params: dict[str, str | int] = {}
        if node_ids:
            params["ids"] = ",".join(node_ids)
            params["node_last_modified"] = "true"
        if depth is not None:
            params["depth"] = depth
        resp = await self._request(
            "GET", f"{self._api}/v1/files/{file_key}", access_token, params=params
        )
        return self._validate(FileResponse, resp.json())

    async def create_dev_resources(
        self, dev_resources: list[dict[str, str]], access_token: str
    ) -> CreateDevResourcesResponse:
        resp = await self._request(
            "POST",
            f"{self._api}/v1/dev_resources",
            access_token,
            json={"dev_resources": dev_resources},
        )
        return self._validate(CreateDevResourcesResponse, resp.json())

    async def get_dev_resources(
        self, file_key: str, access_token: str, node_ids: list[str] | None = None
    ) -> GetDevResourcesResponse:
        params = {"node_ids": ",".join(node_ids)} if node_ids else {}
        resp = await self._request(
            "GET", f"{self._api}/v1/files/{file_key}/dev_resources", access_token, params=params
        )
        return self._validate(GetDevResourcesResponse, resp.json())

    async def delete_dev_resource(
        self, file_key: str, dev_resource_id: str, access_token: str
    ) -> None:
        await self._request(
            "DELETE",
            f"{self._api}/v1/files/{file_key}/dev_resources/{dev_resource_id}",
            access_token,
        )

    async def create_webhook(
        self,
        team_id: str,
        endpoint: str,
        passcode: str,
        description: str,
        access_token: str,
        event_type: str = "FILE_UPDATE",
    ) -> CreateWebhookResponse:
        resp = await self._request(
            "POST",
            f"{self._api}/v2/webhooks",
            access_token,
            json={
                "event_type": event_type,
                "team_id": team_id,
                "endpoint": endpoint,
                "passcode": passcode,
                "description": description,
            },
        )
        return self._validate(CreateWebhookResponse, resp.json())

    async def delete_webhook(self, webhook_id: str, access_token: str) -> None:
        await self._request("DELETE", f"{self._api}/v2/webhooks/{webhook_id}", access_token)

    async def get_team_projects(self, team_id: str, access_token: str) -> GetTeamProjectsResponse:
        resp = await self._request("GET", f"{self._api}/v1/teams/{team_id}/projects", access_token)
        return self._validate(GetTeamProjectsResponse, resp.json())
