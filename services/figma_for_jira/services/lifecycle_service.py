"""Connect lifecycle: install and uninstall."""

import asyncio

from figma_for_jira.domain.entities import (
    ConnectInstallation,
    ConnectInstallationCreateParams,
    ConnectUserInfo,
)
from figma_for_jira.logging_config import get_logger
from figma_for_jira.repositories.protocol import (
    ConnectInstallationRepository,
    FigmaTeamRepository,
)
from figma_for_jira.services.figma_service import FigmaService

logger = get_logger(__name__)


class LifecycleService:
    def __init__(
        self,
        installations: ConnectInstallationRepository,
        figma_teams: FigmaTeamRepository,
        figma_service: FigmaService,
    ) -> None:
        self._installations = installations
        self._figma_teams = figma_teams
        self._figma_service = figma_service

    async def installed(self, params: ConnectInstallationCreateParams) -> ConnectInstallation:
        installation = await self._installations.upsert(params)
        logger.info(
            "Connect installation saved",
            client_key=installation.client_key,
            base_url=installation.base_url,
        )
        return installation

    async def uninstalled(self, client_key: str) -> None:
        """Remove webhooks (best-effort) and then every row owned by the installation.

        A webhook that cannot be deleted is logged with its id and left behind;
        the installation is deleted regardless.
        """
        installation = await self._installations.get_by_client_key(client_key)
        if installation is None:
            logger.info("Uninstall for unknown installation", client_key=client_key)
            return

        teams = await self._figma_teams.find_many_by_installation_id(installation.id)
        results = await asyncio.gather(
            *(
                self._figma_service.try_delete_webhook(
                    team.webhook_id,
                    ConnectUserInfo(team.figma_admin_atlassian_user_id, installation.id),
                )
                for team in teams
            ),
            return_exceptions=True,
        )
        for team, result in zip(teams, results, strict=True):
            if isinstance(result, Exception):
                logger.warning(
                    "Orphaned Figma webhook after uninstall",
                    client_key=client_key,
                    team_id=team.team_id,
                    webhook_id=team.webhook_id,
                    error=str(result),
                )

        await self._installations.delete_by_client_key(client_key)
        logger.info("Connect installation deleted", client_key=client_key, teams=len(teams))
