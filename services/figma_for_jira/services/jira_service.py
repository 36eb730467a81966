"""Jira operations used by the use cases."""

import asyncio
import json
from typing import Any

from figma_for_jira.clients.jira import JiraClient, SubmitDesignsResponse
from figma_for_jira.db.models import Clock, utc_now
from figma_for_jira.domain.entities import (
    AtlassianAssociation,
    AtlassianDesign,
    ConnectInstallation,
    JiraIssue,
)
from figma_for_jira.logging_config import get_logger

logger = get_logger(__name__)

ATTACHED_DESIGN_URL_PROPERTY_KEY = "attached-design-url"
ATTACHED_DESIGN_URL_V2_PROPERTY_KEY = "attached-design-url-v2"
APP_CONFIGURATION_PROPERTY_KEY = "is-configured"

ADMINISTER_PERMISSION = "ADMINISTER"


class SubmitDesignJiraServiceError(Exception):
    """Jira did not accept a design submission."""

    def __init__(
        self,
        design_id: str,
        reason: str,
        errors: list[str] | None = None,
        details: list[Any] | None = None,
    ) -> None:
        self.design_id = design_id
        self.reason = reason
        self.errors = errors or []
        self.details = details or []
        super().__init__(f"Design {design_id} was rejected by Jira: {reason}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "designId": self.design_id,
            "reason": self.reason,
            "errors": self.errors,
            "details": self.details,
        }


def _association_payload(associations: list[AtlassianAssociation] | None) -> list[dict] | None:
    if not associations:
        return None
    return [{"associationType": a.association_type, "values": a.values} for a in associations]


def _parse_attached_design_urls(value: Any) -> list[dict[str, str]]:
    # Stored as a JSON string inside the property value.
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict) and "url" in v]


class JiraService:
    def __init__(self, jira_client: JiraClient, clock: Clock = utc_now) -> None:
        self._jira_client = jira_client
        self._clock = clock

    def build_design_payload(
        self,
        design: AtlassianDesign,
        add_associations: list[AtlassianAssociation] | None = None,
        remove_associations: list[AtlassianAssociation] | None = None,
    ) -> dict[str, Any]:
        now = self._clock()
        return {
            "id": design.id,
            "displayName": design.display_name,
            "url": design.url,
            "liveEmbedUrl": design.live_embed_url,
            "inspectUrl": design.inspect_url,
            "status": design.status.value,
            "type": design.type.value,
            "lastUpdated": design.last_updated.isoformat(),
            "updateSequenceNumber": design.update_sequence_number,
            "addAssociations": _association_payload(add_associations),
            "removeAssociations": _association_payload(remove_associations),
            "associationsLastUpdated": now.isoformat(),
            "associationsUpdateSequenceNumber": int(now.timestamp() * 1000),
        }

    async def submit_design(
        self,
        design: AtlassianDesign,
        installation: ConnectInstallation,
        add_associations: list[AtlassianAssociation] | None = None,
        remove_associations: list[AtlassianAssociation] | None = None,
    ) -> None:
        payload = self.build_design_payload(design, add_associations, remove_associations)
        response = await self._jira_client.submit_designs([payload], installation)
        self._raise_if_rejected(response, design.id)

    async def submit_designs(
        self, designs: list[AtlassianDesign], installation: ConnectInstallation
    ) -> None:
        """Refresh design metadata without touching associations."""
        if not designs:
            return
        response = await self._jira_client.submit_designs(
            [self.build_design_payload(d) for d in designs], installation
        )
        self._raise_if_rejected(response, designs[0].id)

    @staticmethod
    def _raise_if_rejected(response: SubmitDesignsResponse, design_id: str) -> None:
        if response.rejected_entities:
            rejected = response.rejected_entities[0]
            raise SubmitDesignJiraServiceError(
                rejected.key.design_id,
                "design rejected",
                errors=[e.message for e in rejected.errors],
            )
        if response.unknown_issue_keys:
            raise SubmitDesignJiraServiceError(
                design_id, "unknown issue keys", details=list(response.unknown_issue_keys)
            )
        if response.unknown_associations:
            raise SubmitDesignJiraServiceError(
                design_id,
                "unknown associations",
                details=[
                    {"associationType": a.association_type, "values": a.values}
                    for a in response.unknown_associations
                ],
            )

    async def get_issue(self, issue_id: str, installation: ConnectInstallation) -> JiraIssue:
        response = await self._jira_client.get_issue(issue_id, installation)
        return JiraIssue(id=response.id, key=response.key, summary=response.fields.summary)

    @staticmethod
    def build_issue_url(issue: JiraIssue, installation: ConnectInstallation) -> str:
        return f"{installation.base_url.rstrip('/')}/browse/{issue.key}"

    async def save_design_url_in_issue_properties(
        self, issue_id: str, design: AtlassianDesign, installation: ConnectInstallation
    ) -> None:
        await asyncio.gather(
            self._save_attached_design_url(issue_id, design, installation),
            self._save_attached_design_url_v2(issue_id, design, installation),
        )

    async def _save_attached_design_url(
        self, issue_id: str, design: AtlassianDesign, installation: ConnectInstallation
    ) -> None:
        existing = await self._jira_client.get_issue_property(
            issue_id, ATTACHED_DESIGN_URL_PROPERTY_KEY, installation
        )
        if existing is not None:
            return
        await self._jira_client.set_issue_property(
            issue_id, ATTACHED_DESIGN_URL_PROPERTY_KEY, design.url, installation
        )

    async def _save_attached_design_url_v2(
        self, issue_id: str, design: AtlassianDesign, installation: ConnectInstallation
    ) -> None:
        existing = await self._jira_client.get_issue_property(
            issue_id, ATTACHED_DESIGN_URL_V2_PROPERTY_KEY, installation
        )
        urls = _parse_attached_design_urls(existing.value) if existing is not None else []
        if any(entry["url"] == design.url for entry in urls):
            return
        urls.append({"url": design.url, "name": design.display_name})
        await self._jira_client.set_issue_property(
            issue_id, ATTACHED_DESIGN_URL_V2_PROPERTY_KEY, json.dumps(urls), installation
        )

    async def delete_design_url_in_issue_properties(
        self, issue_id: str, design: AtlassianDesign, installation: ConnectInstallation
    ) -> None:
        await asyncio.gather(
            self._delete_attached_design_url(issue_id, design, installation),
            self._delete_attached_design_url_v2(issue_id, design, installation),
        )

    async def _delete_attached_design_url(
        self, issue_id: str, design: AtlassianDesign, installation: ConnectInstallation
    ) -> None:
        existing = await self._jira_client.get_issue_property(
            issue_id, ATTACHED_DESIGN_URL_PROPERTY_KEY, installation
        )
        if existing is None or existing.value != design.url:
            return
        await self._jira_client.delete_issue_property(
            issue_id, ATTACHED_DESIGN_URL_PROPERTY_KEY, installation
        )

    async def _delete_attached_design_url_v2(
        self, issue_id: str, design: AtlassianDesign, installation: ConnectInstallation
    ) -> None:
        existing = await self._jira_client.get_issue_property(
            issue_id, ATTACHED_DESIGN_URL_V2_PROPERTY_KEY, installation
        )
        if existing is None:
            return
        urls = _parse_attached_design_urls(existing.value)
        remaining = [entry for entry in urls if entry["url"] != design.url]
        if len(remaining) == len(urls):
            return
        if remaining:
            await self._jira_client.set_issue_property(
                issue_id, ATTACHED_DESIGN_URL_V2_PROPERTY_KEY, json.dumps(remaining), installation
            )
        else:
            await self._jira_client.delete_issue_property(
                issue_id, ATTACHED_DESIGN_URL_V2_PROPERTY_KEY, installation
            )

    async def set_app_configuration_state(
        self, configured: bool, installation: ConnectInstallation
    ) -> None:
        status = "CONFIGURED" if configured else "NOT_CONFIGURED"
        await self._jira_client.set_app_property(
            APP_CONFIGURATION_PROPERTY_KEY, {"status": status}, installation
        )
        logger.info(
            "Updated app configuration state", client_key=installation.client_key, status=status
        )

    async def is_admin(self, atlassian_user_id: str, installation: ConnectInstallation) -> bool:
        response = await self._jira_client.check_permissions(
            atlassian_user_id, [ADMINISTER_PERMISSION], installation
        )
        return ADMINISTER_PERMISSION in response.global_permissions
