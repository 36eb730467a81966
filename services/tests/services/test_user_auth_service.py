"""Tests for per-user authorization checks and the OAuth2 callback."""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from figma_for_jira.auth.connect_verifiers import InstallationNotFoundError
from figma_for_jira.auth.figma_oauth2 import FigmaAuthService
from figma_for_jira.domain.entities import (
    ConnectUserInfo,
    FigmaOAuth2UserCredentials,
    FigmaUser,
)
from figma_for_jira.services.figma_service import FigmaService, FigmaServiceCredentialsError
from figma_for_jira.services.user_auth_service import CheckAuthResult, UserAuthService

AUTHORIZE_URL = "https://www.figma.com/oauth?client_id=test-client-id&state=s"


@pytest.fixture
def figma_service():
    return AsyncMock(spec=FigmaService)


@pytest.fixture
def auth_service():
    auth_service = AsyncMock(spec=FigmaAuthService)
    auth_service.build_authorization_endpoint = MagicMock(return_value=AUTHORIZE_URL)
    auth_service.verify_oauth2_state = MagicMock(return_value=("atlassian-user-1", "client-key-1"))
    return auth_service


@pytest.fixture
def installations(installation):
    installations = AsyncMock()
    installations.get_by_client_key.return_value = installation
    return installations


@pytest.fixture
def service(figma_service, auth_service, installations):
    return UserAuthService(figma_service, auth_service, installations)


class TestCheckAuthResult:
    def test_authorized_response(self):
        assert CheckAuthResult(authorized=True).to_response() == {"type": "3LO", "authorized": True}

    def test_unauthorized_response_carries_grant(self):
        body = CheckAuthResult(authorized=False, authorization_endpoint=AUTHORIZE_URL).to_response()

        assert body == {
            "type": "3LO",
            "authorized": False,
            "grant": {"authorizationEndpoint": AUTHORIZE_URL},
        }


class TestCheckAuth:
    async def test_authorized(self, service, figma_service, auth_service, installation):
        result = await service.check_auth("atlassian-user-1", installation)

        assert result == CheckAuthResult(authorized=True)
        figma_service.get_valid_credentials_or_raise.assert_awaited_once_with(
            ConnectUserInfo("atlassian-user-1", installation.id)
        )
        auth_service.build_authorization_endpoint.assert_not_called()

    async def test_unauthorized(self, service, figma_service, auth_service, installation):
        figma_service.get_valid_credentials_or_raise.side_effect = FigmaServiceCredentialsError(
            ConnectUserInfo("atlassian-user-1", installation.id)
        )

        result = await service.check_auth("atlassian-user-1", installation)

        assert result.authorized is False
        assert result.authorization_endpoint == AUTHORIZE_URL
        auth_service.build_authorization_endpoint.assert_called_once_with(
            "atlassian-user-1", installation.client_key
        )


class TestGetCurrentUser:
    async def test_returns_figma_user(self, service, figma_service, installation, now):
        credentials = FigmaOAuth2UserCredentials(
            id=uuid.uuid4(),
            atlassian_user_id="atlassian-user-1",
            access_token="figd_a",
            refresh_token="figd_r",
            expires_at=now + timedelta(hours=1),
            connect_installation_id=installation.id,
        )
        figma_user = FigmaUser(
            id="figma-1", handle="designer", email="designer@example.com", img_url="https://img"
        )
        figma_service.get_valid_credentials_or_raise.return_value = credentials
        figma_service.get_current_user.return_value = figma_user

        assert await service.get_current_user("atlassian-user-1", installation) == figma_user
        figma_service.get_current_user.assert_awaited_once_with(credentials)


class TestCompleteOAuth2:
    async def test_stores_credentials(self, service, auth_service, installation):
        user = await service.complete_oauth2("code-1", "state-token")

        assert user == ConnectUserInfo("atlassian-user-1", installation.id)
        auth_service.verify_oauth2_state.assert_called_once_with("state-token")
        auth_service.create_credentials.assert_awaited_once_with("code-1", user)

    async def test_unknown_installation(self, service, auth_service, installations):
        installations.get_by_client_key.return_value = None

        with pytest.raises(InstallationNotFoundError):
            await service.complete_oauth2("code-1", "state-token")

        auth_service.create_credentials.assert_not_awaited()
