"""Handling of Figma webhook deliveries.

Only FILE_UPDATE is acted on: the designs associated with the updated file
are fetched again and resubmitted to Jira. Other event types are accepted
and ignored so that Figma does not retry them.
"""

from enum import StrEnum

import httpx
from pydantic import BaseModel, model_validator

from figma_for_jira.auth.webhook_passcode import WebhookPasscodeInput, validate_webhook_passcode
from figma_for_jira.clients.validation import UnexpectedResponseError
from figma_for_jira.domain.entities import (
    ConnectUserInfo,
    FigmaOAuth2UserCredentials,
    FigmaTeam,
    FigmaTeamAuthStatus,
)
from figma_for_jira.domain.errors import FigmaTeamNotFoundError, InvalidInputError
from figma_for_jira.logging_config import get_logger
from figma_for_jira.repositories.protocol import (
    AssociatedFigmaDesignRepository,
    ConnectInstallationRepository,
    FigmaTeamRepository,
)
from figma_for_jira.services.figma_service import FigmaService, FigmaServiceCredentialsError
from figma_for_jira.services.jira_service import JiraService

logger = get_logger(__name__)


class FigmaWebhookEventType(StrEnum):
    PING = "PING"
    FILE_UPDATE = "FILE_UPDATE"
    FILE_VERSION_UPDATE = "FILE_VERSION_UPDATE"
    FILE_DELETE = "FILE_DELETE"
    LIBRARY_PUBLISH = "LIBRARY_PUBLISH"
    FILE_COMMENT = "FILE_COMMENT"


class WebhookTriggeredBy(BaseModel):
    id: str
    handle: str


class FigmaWebhookEventPayload(BaseModel):
    event_type: FigmaWebhookEventType
    file_key: str | None = None
    file_name: str | None = None
    passcode: str
    protocol_version: str
    retries: int
    timestamp: str
    webhook_id: str
    triggered_by: WebhookTriggeredBy | None = None

    @model_validator(mode="after")
    def _require_file_fields(self) -> "FigmaWebhookEventPayload":
        if self.event_type != FigmaWebhookEventType.PING and (
            self.file_key is None or self.file_name is None
        ):
            raise ValueError(f"{self.event_type} events require file_key and file_name")
        return self


class InvalidWebhookPasscodeError(Exception):
    def __init__(self, webhook_id: str) -> None:
        self.webhook_id = webhook_id
        super().__init__(f"Invalid passcode for webhook {webhook_id}")


class WebhookService:
    def __init__(
        self,
        figma_service: FigmaService,
        jira_service: JiraService,
        installations: ConnectInstallationRepository,
        figma_teams: FigmaTeamRepository,
        associated_designs: AssociatedFigmaDesignRepository,
    ) -> None:
        self._figma_service = figma_service
        self._jira_service = jira_service
        self._installations = installations
        self._figma_teams = figma_teams
        self._associated_designs = associated_designs

    async def handle_event(self, payload: FigmaWebhookEventPayload) -> None:
        if payload.event_type != FigmaWebhookEventType.FILE_UPDATE:
            logger.info(
                "Ignoring unsupported Figma webhook event",
                event_type=payload.event_type.value,
                webhook_id=payload.webhook_id,
            )
            return

        team = await self._figma_teams.get_by_webhook_id(payload.webhook_id)
        if team is None:
            raise FigmaTeamNotFoundError(payload.webhook_id)

        installation = await self._installations.get_by_id(team.connect_installation_id)
        if installation is None:
            raise FigmaTeamNotFoundError(payload.webhook_id)

        passcode_input = WebhookPasscodeInput(
            atlassian_user_id=team.figma_admin_atlassian_user_id,
            figma_team_id=team.team_id,
            connect_installation_secret=installation.shared_secret,
        )
        if not validate_webhook_passcode(payload.passcode, passcode_input):
            logger.warning("Rejected Figma webhook with invalid passcode", webhook_id=payload.webhook_id)
            raise InvalidWebhookPasscodeError(payload.webhook_id)

        admin = ConnectUserInfo(team.figma_admin_atlassian_user_id, installation.id)
        try:
            credentials = await self._figma_service.get_valid_credentials_or_raise(admin)
        except FigmaServiceCredentialsError:
            logger.warning(
                "Figma team admin credentials are no longer valid",
                team_id=team.team_id,
                webhook_id=team.webhook_id,
            )
            await self._figma_teams.update_auth_status(team.id, FigmaTeamAuthStatus.ERROR)
            return

        await self._refresh_team_name(team, credentials)

        if payload.file_key is None:
            raise InvalidInputError(f"{payload.event_type} event without file_key")
        associated = await self._associated_designs.find_many_by_file_key_and_installation_id(
            payload.file_key, installation.id
        )
        design_ids = list(dict.fromkeys(a.design_id for a in associated))
        if not design_ids:
            return

        designs = await self._figma_service.fetch_designs(design_ids, credentials)
        await self._jira_service.submit_designs(designs, installation)
        logger.info(
            "Resubmitted designs after Figma file update",
            file_key=payload.file_key,
            designs=len(designs),
        )

    async def _refresh_team_name(
        self, team: FigmaTeam, credentials: FigmaOAuth2UserCredentials
    ) -> None:
        try:
            team_name = await self._figma_service.get_team_name(team.team_id, credentials)
        except (httpx.HTTPError, UnexpectedResponseError) as e:
            logger.warning("Failed to refresh Figma team name", team_id=team.team_id, error=str(e))
            return
        if team_name != team.team_name:
            await self._figma_teams.update_team_name(team.id, team_name)
