"""Tests for Figma webhook event handling."""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from figma_for_jira.auth.webhook_passcode import WebhookPasscodeInput, generate_webhook_passcode
from figma_for_jira.domain.entities import (
    AssociatedFigmaDesign,
    AtlassianDesign,
    AtlassianDesignStatus,
    AtlassianDesignType,
    ConnectUserInfo,
    FigmaDesignIdentifier,
    FigmaOAuth2UserCredentials,
    FigmaTeam,
    FigmaTeamAuthStatus,
)
from figma_for_jira.domain.errors import FigmaTeamNotFoundError, InvalidInputError
from figma_for_jira.services.figma_service import FigmaService, FigmaServiceCredentialsError
from figma_for_jira.services.jira_service import JiraService
from figma_for_jira.services.webhook_service import (
    FigmaWebhookEventPayload,
    InvalidWebhookPasscodeError,
    WebhookService,
)

ADMIN = "atlassian-admin-1"


def _payload(passcode: str, event_type: str = "FILE_UPDATE", **overrides) -> FigmaWebhookEventPayload:
    body = {
        "event_type": event_type,
        "file_key": "abc",
        "file_name": "Checkout flow",
        "passcode": passcode,
        "protocol_version": "2",
        "retries": 0,
        "timestamp": "2026-03-01T12:00:00Z",
        "webhook_id": "wh-1",
        **overrides,
    }
    return FigmaWebhookEventPayload.model_validate(body)


def _design(design_id: str) -> AtlassianDesign:
    return AtlassianDesign(
        id=design_id,
        display_name=design_id,
        url=f"https://www.figma.com/file/{design_id}",
        live_embed_url="https://www.figma.com/embed",
        inspect_url=f"https://www.figma.com/file/{design_id}?mode=dev",
        status=AtlassianDesignStatus.NONE,
        type=AtlassianDesignType.NODE,
        last_updated=datetime(2026, 3, 1, tzinfo=UTC),
        update_sequence_number=7,
    )


@pytest.fixture
def team(installation):
    return FigmaTeam(
        id=uuid.uuid4(),
        webhook_id="wh-1",
        webhook_passcode="unused",
        team_id="team-1",
        team_name="Design Team",
        figma_admin_atlassian_user_id=ADMIN,
        auth_status=FigmaTeamAuthStatus.OK,
        connect_installation_id=installation.id,
    )


@pytest.fixture
def passcode(installation):
    return generate_webhook_passcode(
        WebhookPasscodeInput(ADMIN, "team-1", installation.shared_secret)
    )


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
    return figma_service


@pytest.fixture
def jira_service():
    return AsyncMock(spec=JiraService)


@pytest.fixture
def installations(installation):
    installations = AsyncMock()
    installations.get_by_id.return_value = installation
    return installations


@pytest.fixture
def figma_teams(team):
    figma_teams = AsyncMock()
    figma_teams.get_by_webhook_id.return_value = team
    return figma_teams


@pytest.fixture
def associated_designs(installation):
    associated_designs = AsyncMock()
    associated_designs.find_many_by_file_key_and_installation_id.return_value = [
        AssociatedFigmaDesign(
            id=uuid.uuid4(),
            design_id=FigmaDesignIdentifier("abc", "1:2"),
            associated_with_ari=f"ari:cloud:jira:site:issue/{n}",
            connect_installation_id=installation.id,
        )
        for n in (1, 2)
    ] + [
        AssociatedFigmaDesign(
            id=uuid.uuid4(),
            design_id=FigmaDesignIdentifier("abc"),
            associated_with_ari="ari:cloud:jira:site:issue/3",
            connect_installation_id=installation.id,
        )
    ]
    return associated_designs


@pytest.fixture
def service(figma_service, jira_service, installations, figma_teams, associated_designs):
    return WebhookService(figma_service, jira_service, installations, figma_teams, associated_designs)


class TestPayload:
    def test_ping_needs_no_file(self):
        payload = _payload("p", event_type="PING", file_key=None, file_name=None)
        assert payload.file_key is None

    def test_file_update_needs_file_key(self):
        with pytest.raises(ValidationError):
            _payload("p", file_key=None)

    def test_unknown_event_type(self):
        with pytest.raises(ValidationError):
            _payload("p", event_type="SOMETHING_ELSE")


class TestHandleEvent:
    async def test_file_update_resubmits_designs(
        self, service, figma_service, jira_service, passcode, credentials, installation
    ):
        designs = [_design("abc/1:2"), _design("abc")]
        figma_service.fetch_designs.return_value = designs

        await service.handle_event(_payload(passcode))

        figma_service.fetch_designs.assert_awaited_once_with(
            [FigmaDesignIdentifier("abc", "1:2"), FigmaDesignIdentifier("abc")], credentials
        )
        jira_service.submit_designs.assert_awaited_once_with(designs, installation)

    async def test_unsupported_event_is_ignored(self, service, figma_teams, passcode):
        await service.handle_event(_payload(passcode, event_type="FILE_COMMENT"))

        figma_teams.get_by_webhook_id.assert_not_awaited()

    async def test_unknown_webhook(self, service, figma_teams, passcode):
        figma_teams.get_by_webhook_id.return_value = None

        with pytest.raises(FigmaTeamNotFoundError):
            await service.handle_event(_payload(passcode))

    async def test_wrong_passcode(self, service, figma_service):
        with pytest.raises(InvalidWebhookPasscodeError):
            await service.handle_event(_payload("0" * 64))

        figma_service.get_valid_credentials_or_raise.assert_not_awaited()

    async def test_admin_credentials_invalid_marks_team(
        self, service, figma_service, figma_teams, jira_service, passcode, team, installation
    ):
        figma_service.get_valid_credentials_or_raise.side_effect = FigmaServiceCredentialsError(
            ConnectUserInfo(ADMIN, installation.id)
        )

        await service.handle_event(_payload(passcode))

        figma_teams.update_auth_status.assert_awaited_once_with(team.id, FigmaTeamAuthStatus.ERROR)
        jira_service.submit_designs.assert_not_awaited()

    async def test_team_rename_is_stored(
        self, service, figma_service, figma_teams, passcode, team
    ):
        figma_service.get_team_name.return_value = "Renamed Team"
        figma_service.fetch_designs.return_value = []

        await service.handle_event(_payload(passcode))

        figma_teams.update_team_name.assert_awaited_once_with(team.id, "Renamed Team")

    async def test_no_associated_designs(
        self, service, figma_service, jira_service, associated_designs, passcode
    ):
        associated_designs.find_many_by_file_key_and_installation_id.return_value = []

        await service.handle_event(_payload(passcode))

        figma_service.fetch_designs.assert_not_awaited()
        jira_service.submit_designs.assert_not_awaited()

    async def test_file_update_without_file_key_rejected(
        self, service, associated_designs, jira_service, passcode
    ):
        payload = _payload(passcode).model_copy(update={"file_key": None})

        with pytest.raises(InvalidInputError, match="file_key"):
            await service.handle_event(payload)

        associated_designs.find_many_by_file_key_and_installation_id.assert_not_awaited()
        jira_service.submit_designs.assert_not_awaited()
