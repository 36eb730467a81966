"""Connecting Figma teams to an installation.

A connected team has a FILE_UPDATE webhook registered with the connecting
user's credentials. That user becomes the team's admin for webhook handling.
"""

from figma_for_jira.auth.webhook_passcode import WebhookPasscodeInput, generate_webhook_passcode
from figma_for_jira.domain.entities import (
    ConnectInstallation,
    ConnectUserInfo,
    FigmaTeamAuthStatus,
    FigmaTeamCreateParams,
    FigmaTeamSummary,
)
from figma_for_jira.domain.errors import FigmaTeamNotFoundError, PermissionDeniedError
from figma_for_jira.logging_config import get_logger
from figma_for_jira.repositories.protocol import FigmaTeamRepository
from figma_for_jira.services.figma_service import FigmaService
from figma_for_jira.services.jira_service import JiraService

logger = get_logger(__name__)


class TeamService:
    def __init__(
        self,
        figma_service: FigmaService,
        jira_service: JiraService,
        figma_teams: FigmaTeamRepository,
    ) -> None:
        self._figma_service = figma_service
        self._jira_service = jira_service
        self._figma_teams = figma_teams

    async def _require_admin(self, atlassian_user_id: str, installation: ConnectInstallation) -> None:
        if not await self._jira_service.is_admin(atlassian_user_id, installation):
            raise PermissionDeniedError("Only Jira administrators can manage Figma teams")

    async def configure(
        self, team_id: str, atlassian_user_id: str, installation: ConnectInstallation
    ) -> FigmaTeamSummary:
        await self._require_admin(atlassian_user_id, installation)
        user = ConnectUserInfo(atlassian_user_id, installation.id)
        credentials = await self._figma_service.get_valid_credentials_or_raise(user)

        team_name = await self._figma_service.get_team_name(team_id, credentials)
        passcode = generate_webhook_passcode(
            WebhookPasscodeInput(
                atlassian_user_id=atlassian_user_id,
                figma_team_id=team_id,
                connect_installation_secret=installation.shared_secret,
            )
        )
        webhook_id = await self._figma_service.create_file_update_webhook(
            team_id, passcode, credentials
        )

        team = await self._figma_teams.upsert(
            FigmaTeamCreateParams(
                webhook_id=webhook_id,
                webhook_passcode=passcode,
                team_id=team_id,
                team_name=team_name,
                figma_admin_atlassian_user_id=atlassian_user_id,
                auth_status=FigmaTeamAuthStatus.OK,
                connect_installation_id=installation.id,
            )
        )
        await self._jira_service.set_app_configuration_state(True, installation)
        logger.info(
            "Figma team connected",
            team_id=team_id,
            webhook_id=webhook_id,
            client_key=installation.client_key,
        )
        return team.to_summary()

    async def disconnect(
        self, team_id: str, atlassian_user_id: str, installation: ConnectInstallation
    ) -> None:
        await self._require_admin(atlassian_user_id, installation)
        team = await self._figma_teams.get_by_team_id_and_installation_id(team_id, installation.id)
        if team is None:
            raise FigmaTeamNotFoundError(team_id)

        await self._figma_service.try_delete_webhook(
            team.webhook_id, ConnectUserInfo(team.figma_admin_atlassian_user_id, installation.id)
        )
        await self._figma_teams.delete(team.id)

        if not await self._figma_teams.find_many_by_installation_id(installation.id):
            await self._jira_service.set_app_configuration_state(False, installation)
        logger.info("Figma team disconnected", team_id=team_id, client_key=installation.client_key)

    async def list_teams(self, installation: ConnectInstallation) -> list[FigmaTeamSummary]:
        teams = await self._figma_teams.find_many_by_installation_id(installation.id)
        return [team.to_summary() for team in teams]
