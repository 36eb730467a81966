"""Jira REST API client for a Connect installation.

Every request is signed with a fresh Connect JWT bound to its method, path
and query. Non-2xx responses raise ``httpx.HTTPStatusError`` except where a
404 is an expected outcome, which is returned as ``None`` / ``False``.
"""

from typing import Any

import httpx
from pydantic import BaseModel, Field

from figma_for_jira.auth.connect_jwt import create_connect_jwt_token
from figma_for_jira.clients.validation import ResponseValidator, validate_response
from figma_for_jira.db.models import Clock, utc_now
from figma_for_jira.domain.entities import ConnectInstallation

# --- Response shapes ---


class SubmitDesignsRejectedKey(BaseModel):
    design_id: str = Field(alias="designId")


class SubmitDesignsError(BaseModel):
    message: str


class SubmitDesignsRejectedEntity(BaseModel):
    key: SubmitDesignsRejectedKey
    errors: list[SubmitDesignsError]


class SubmitDesignsAcceptedEntity(BaseModel):
    design_id: str = Field(alias="designId")


class UnknownAssociation(BaseModel):
    association_type: str = Field(alias="associationType")
    values: list[str]


class SubmitDesignsResponse(BaseModel):
    accepted_entities: list[SubmitDesignsAcceptedEntity] = Field(alias="acceptedEntities")
    rejected_entities: list[SubmitDesignsRejectedEntity] = Field(alias="rejectedEntities")
    unknown_issue_keys: list[str] | None = Field(default=None, alias="unknownIssueKeys")
    unknown_associations: list[UnknownAssociation] | None = Field(
        default=None, alias="unknownAssociations"
    )


class IssueFields(BaseModel):
    summary: str = ""


class GetIssueResponse(BaseModel):
    id: str
    key: str
    self_url: str | None = Field(default=None, alias="self")
    fields: IssueFields = Field(default_factory=IssueFields)


class GetIssuePropertyResponse(BaseModel):
    key: str
    value: Any = None


class CheckPermissionsResponse(BaseModel):
    global_permissions: list[str] = Field(default_factory=list, alias="globalPermissions")


# --- Client ---


class JiraClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        validate: ResponseValidator = validate_response,
        clock: Clock = utc_now,
        token_expires_in_seconds: int = 180,
    ) -> None:
        self._http = http
        self._validate = validate
        self._clock = clock
        self._token_expires_in_seconds = token_expires_in_seconds

    async def _send(
        self,
        installation: ConnectInstallation,
        method: str,
        path: str,
        json: Any = None,
    ) -> httpx.Response:
        url = installation.base_url.rstrip("/") + path
        token = create_connect_jwt_token(
            installation, method, url, self._clock(), self._token_expires_in_seconds
        )
        return await self._http.request(
            method,
            url,
            json=json,
            headers={"Authorization": f"JWT {token}", "Accept": "application/json"},
        )

    async def _request(
        self, installation: ConnectInstallation, method: str, path: str, **kwargs: Any
    ) -> httpx.Response:
        resp = await self._send(installation, method, path, **kwargs)
        resp.raise_for_status()
        return resp

    async def _request_or_none(
        self, installation: ConnectInstallation, method: str, path: str
    ) -> httpx.Response | None:
        resp = await self._send(installation, method, path)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp

    async def submit_designs(
        self, designs: list[dict[str, Any]], installation: ConnectInstallation
    ) -> SubmitDesignsResponse:
        """Bulk upsert designs through Jira's design ingestion API."""
        resp = await self._request(
            installation, "POST", "/rest/designs/1.0/bulk", json={"designs": designs}
        )
        return self._validate(SubmitDesignsResponse, resp.json())

    async def get_issue(self, issue_id_or_key: str, installation: ConnectInstallation) -> GetIssueResponse:
        resp = await self._request(installation, "GET", f"/rest/api/3/issue/{issue_id_or_key}")
        return self._validate(GetIssueResponse, resp.json())

    async def get_issue_property(
        self, issue_id_or_key: str, property_key: str, installation: ConnectInstallation
    ) -> GetIssuePropertyResponse | None:
        resp = await self._request_or_none(
            installation, "GET", f"/rest/api/2/issue/{issue_id_or_key}/properties/{property_key}"
        )
        if resp is None:
            return None
        return self._validate(GetIssuePropertyResponse, resp.json())

    async def set_issue_property(
        self,
        issue_id_or_key: str,
        property_key: str,
        value: Any,
        installation: ConnectInstallation,
    ) -> None:
        await self._request(
            installation,
            "PUT",
            f"/rest/api/2/issue/{issue_id_or_key}/properties/{property_key}",
            json=value,
        )

    async def delete_issue_property(
        self, issue_id_or_key: str, property_key: str, installation: ConnectInstallation
    ) -> bool:
        resp = await self._request_or_none(
            installation, "DELETE", f"/rest/api/2/issue/{issue_id_or_key}/properties/{property_key}"
        )
        return resp is not None

    async def check_permissions(
        self, account_id: str, global_permissions: list[str], installation: ConnectInstallation
    ) -> CheckPermissionsResponse:
        resp = await self._request(
            installation,
            "POST",
            "/rest/api/3/permissions/check",
            json={"accountId": account_id, "globalPermissions": global_permissions},
        )
        return self._validate(CheckPermissionsResponse, resp.json())

    async def set_app_property(
        self, property_key: str, value: Any, installation: ConnectInstallation
    ) -> None:
        await self._request(
            installation,
            "PUT",
            f"/rest/atlassian-connect/1/addons/{installation.key}/properties/{property_key}",
            json=value,
        )
