"""Figma operations used by the use cases.

Wraps ``FigmaClient`` with credential resolution and the best-effort
semantics some flows need (dev resources, webhook cleanup).
"""

import asyncio

import httpx

from figma_for_jira.auth.figma_oauth2 import FigmaAuthService, FigmaCredentialsError
from figma_for_jira.clients.figma import FigmaClient
from figma_for_jira.config import Settings
from figma_for_jira.domain.entities import (
    AtlassianDesign,
    ConnectUserInfo,
    FigmaDesignIdentifier,
    FigmaOAuth2UserCredentials,
    FigmaUser,
)
from figma_for_jira.logging_config import get_logger
from figma_for_jira.services.figma_backfill import build_minimal_design_from_url
from figma_for_jira.services.figma_transformer import transform_to_atlassian_design

logger = get_logger(__name__)


class FigmaServiceCredentialsError(Exception):
    """The user has no usable Figma credentials and must authorize again."""

    def __init__(self, user: ConnectUserInfo) -> None:
        self.user = user
        super().__init__(f"No valid Figma OAuth2 credentials for {user.atlassian_user_id}")


def _is_auth_rejection(e: httpx.HTTPStatusError) -> bool:
    return e.response.status_code in (401, 403)


class FigmaService:
    def __init__(
        self, settings: Settings, figma_client: FigmaClient, auth_service: FigmaAuthService
    ) -> None:
        self._settings = settings
        self._figma_client = figma_client
        self._auth_service = auth_service

    async def get_valid_credentials_or_raise(
        self, user: ConnectUserInfo
    ) -> FigmaOAuth2UserCredentials:
        """Return credentials that Figma currently accepts.

        Stored credentials are checked with ``/v1/me``. Missing credentials, a
        failed refresh and a rejected check all raise ``FigmaServiceCredentialsError``.
        """
        try:
            credentials = await self._auth_service.get_credentials(user)
        except FigmaCredentialsError as e:
            raise FigmaServiceCredentialsError(user) from e

        try:
            await self._figma_client.me(credentials.access_token)
        except httpx.HTTPStatusError as e:
            if _is_auth_rejection(e):
                raise FigmaServiceCredentialsError(user) from e
            raise
        return credentials

    async def get_current_user(self, credentials: FigmaOAuth2UserCredentials) -> FigmaUser:
        me = await self._figma_client.me(credentials.access_token)
        return FigmaUser(id=me.id, handle=me.handle, email=me.email, img_url=me.img_url)

    async def fetch_design(
        self, design_id: FigmaDesignIdentifier, credentials: FigmaOAuth2UserCredentials
    ) -> AtlassianDesign:
        file = await self._figma_client.get_file(
            design_id.file_key,
            credentials.access_token,
            node_ids=[design_id.node_id] if design_id.node_id else None,
            depth=None if design_id.node_id else 1,
        )
        return transform_to_atlassian_design(design_id, file, self._settings.figma.web_base_url)

    async def fetch_designs(
        self, design_ids: list[FigmaDesignIdentifier], credentials: FigmaOAuth2UserCredentials
    ) -> list[AtlassianDesign]:
        return list(
            await asyncio.gather(*(self.fetch_design(d, credentials) for d in design_ids))
        )

    def build_minimal_design(self, design_url: str) -> AtlassianDesign:
        """Design entity from the URL alone, for links Jira is backfilling."""
        return build_minimal_design_from_url(design_url, self._settings.figma.web_base_url)

    async def try_create_dev_resource_for_jira_issue(
        self,
        design_id: FigmaDesignIdentifier,
        issue_url: str,
        issue_title: str,
        credentials: FigmaOAuth2UserCredentials,
    ) -> None:
        """Link the design back to the issue. Errors reported by Figma are only logged."""
        response = await self._figma_client.create_dev_resources(
            [
                {
                    "name": issue_title,
                    "url": issue_url,
                    "file_key": design_id.file_key,
                    "node_id": design_id.node_id_or_default,
                }
            ],
            credentials.access_token,
        )
        for error in response.errors:
            logger.warning(
                "Figma rejected dev resource",
                design_id=str(design_id),
                issue_url=issue_url,
                error=error.error,
            )

    async def try_delete_dev_resource(
        self,
        design_id: FigmaDesignIdentifier,
        dev_resource_url: str,
        credentials: FigmaOAuth2UserCredentials,
    ) -> None:
        """Remove the dev resource pointing at ``dev_resource_url``, if there is one."""
        response = await self._figma_client.get_dev_resources(
            design_id.file_key,
            credentials.access_token,
            node_ids=[design_id.node_id_or_default],
        )
        dev_resource = next(
            (r for r in response.dev_resources if r.url == dev_resource_url), None
        )
        if dev_resource is None:
            logger.info(
                "No dev resource to delete",
                design_id=str(design_id),
                dev_resource_url=dev_resource_url,
            )
            return

        try:
            await self._figma_client.delete_dev_resource(
                design_id.file_key, dev_resource.id, credentials.access_token
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                raise
            logger.info("Dev resource already deleted", dev_resource_id=dev_resource.id)

    async def create_file_update_webhook(
        self, team_id: str, passcode: str, credentials: FigmaOAuth2UserCredentials
    ) -> str:
        """Register the FILE_UPDATE webhook for a team. Returns the webhook id."""
        response = await self._figma_client.create_webhook(
            team_id=team_id,
            endpoint=f"{self._settings.app.base_url.rstrip('/')}/figma/webhook",
            passcode=passcode,
            description="Figma for Jira Cloud",
            access_token=credentials.access_token,
        )
        return response.id

    async def try_delete_webhook(self, webhook_id: str, admin: ConnectUserInfo) -> None:
        """Delete a webhook with its admin's credentials. Failures are logged, not raised."""
        try:
            credentials = await self.get_valid_credentials_or_raise(admin)
            await self._figma_client.delete_webhook(webhook_id, credentials.access_token)
        except (FigmaServiceCredentialsError, httpx.HTTPError) as e:
            logger.warning("Failed to delete Figma webhook", webhook_id=webhook_id, error=str(e))

    async def get_team_name(self, team_id: str, credentials: FigmaOAuth2UserCredentials) -> str:
        response = await self._figma_client.get_team_projects(team_id, credentials.access_token)
        return response.name
