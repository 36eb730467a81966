"""Tests for connecting and disconnecting Figma teams."""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from figma_for_jira.auth.webhook_passcode import WebhookPasscodeInput, generate_webhook_passcode
from figma_for_jira.domain.entities import (
    ConnectUserInfo,
    FigmaOAuth2UserCredentials,
    FigmaTeam,
    FigmaTeamAuthStatus,
    FigmaTeamCreateParams,
)
from figma_for_jira.domain.errors import FigmaTeamNotFoundError, PermissionDeniedError
from figma_for_jira.services.figma_service import FigmaService, FigmaServiceCredentialsError
from figma_for_jira.services.jira_service import JiraService
from figma_for_jira.services.team_service import TeamService

ADMIN = "atlassian-admin-1"


def _stored(params: FigmaTeamCreateParams) -> FigmaTeam:
    return FigmaTeam(id=uuid.uuid4(), **vars(params))


@pytest.fixture
def credentials(now, installation):
    return FigmaOAuth2UserCredentials(
        id=uuid.uuid4(),
        atlassian_user_id=ADMIN,
        access_token="figd_a",
        refresh_token="figd_r",
        expires_at=now + timedelta(hours=1),
        connect_installation_id=installation.id,
    )


@pytest.fixture
def figma_service(credentials):
    figma_service = AsyncMock(spec=FigmaService)
    figma_service.get_valid_credentials_or_raise.return_value = credentials
    figma_service.get_team_name.return_value = "Design Team"
    figma_service.create_file_update_webhook.return_value = "wh-1"
    return figma_service


@pytest.fixture
def jira_service():
    jira_service = AsyncMock(spec=JiraService)
    jira_service.is_admin.return_value = True
    return jira_service


@pytest.fixture
def figma_teams():
    figma_teams = AsyncMock()
    figma_teams.upsert.side_effect = _stored
    return figma_teams


@pytest.fixture
def service(figma_service, jira_service, figma_teams):
    return TeamService(figma_service, jira_service, figma_teams)


class TestConfigure:
    async def test_connects_team(
        self, service, figma_service, jira_service, figma_teams, installation, credentials
    ):
        summary = await service.configure("team-1", ADMIN, installation)

        assert summary.team_id == "team-1"
        assert summary.team_name == "Design Team"
        assert summary.auth_status == FigmaTeamAuthStatus.OK

        passcode = generate_webhook_passcode(
            WebhookPasscodeInput(ADMIN, "team-1", installation.shared_secret)
        )
        figma_service.create_file_update_webhook.assert_awaited_once_with(
            "team-1", passcode, credentials
        )
        [params] = figma_teams.upsert.await_args.args
        assert params.webhook_id == "wh-1"
        assert params.webhook_passcode == passcode
        assert params.figma_admin_atlassian_user_id == ADMIN
        jira_service.set_app_configuration_state.assert_awaited_once_with(True, installation)

    async def test_requires_admin(self, service, jira_service, figma_service, installation):
        jira_service.is_admin.return_value = False

        with pytest.raises(PermissionDeniedError):
            await service.configure("team-1", "atlassian-user-2", installation)

        figma_service.create_file_update_webhook.assert_not_awaited()

    async def test_requires_figma_credentials(
        self, service, figma_service, figma_teams, installation
    ):
        figma_service.get_valid_credentials_or_raise.side_effect = FigmaServiceCredentialsError(
            ConnectUserInfo(ADMIN, installation.id)
        )

        with pytest.raises(FigmaServiceCredentialsError):
            await service.configure("team-1", ADMIN, installation)

        figma_teams.upsert.assert_not_awaited()


class TestDisconnect:
    @pytest.fixture
    def team(self, installation):
        return FigmaTeam(
            id=uuid.uuid4(),
            webhook_id="wh-1",
            webhook_passcode="passcode",
            team_id="team-1",
            team_name="Design Team",
            figma_admin_atlassian_user_id="connecting-admin",
            auth_status=FigmaTeamAuthStatus.OK,
            connect_installation_id=installation.id,
        )

    async def test_last_team_marks_app_unconfigured(
        self, service, figma_service, jira_service, figma_teams, installation, team
    ):
        figma_teams.get_by_team_id_and_installation_id.return_value = team
        figma_teams.find_many_by_installation_id.return_value = []

        await service.disconnect("team-1", ADMIN, installation)

        figma_service.try_delete_webhook.assert_awaited_once_with(
            "wh-1", ConnectUserInfo("connecting-admin", installation.id)
        )
        figma_teams.delete.assert_awaited_once_with(team.id)
        jira_service.set_app_configuration_state.assert_awaited_once_with(False, installation)

    async def test_other_teams_remain(self, service, jira_service, figma_teams, installation, team):
        figma_teams.get_by_team_id_and_installation_id.return_value = team
        figma_teams.find_many_by_installation_id.return_value = [team]

        await service.disconnect("team-1", ADMIN, installation)

        jira_service.set_app_configuration_state.assert_not_awaited()

    async def test_unknown_team(self, service, figma_teams, installation):
        figma_teams.get_by_team_id_and_installation_id.return_value = None

        with pytest.raises(FigmaTeamNotFoundError):
            await service.disconnect("team-404", ADMIN, installation)

        figma_teams.delete.assert_not_awaited()


class TestListTeams:
    async def test_summaries(self, service, figma_teams, installation):
        figma_teams.find_many_by_installation_id.return_value = [
            FigmaTeam(
                id=uuid.uuid4(),
                webhook_id="wh-1",
                webhook_passcode="p",
                team_id="team-1",
                team_name="Design Team",
                figma_admin_atlassian_user_id=ADMIN,
                auth_status=FigmaTeamAuthStatus.ERROR,
                connect_installation_id=installation.id,
            )
        ]

        [summary] = await service.list_teams(installation)

        assert summary.team_id == "team-1"
        assert summary.auth_status == FigmaTeamAuthStatus.ERROR
