"""Per-user Figma authorization status and the OAuth2 callback."""

from dataclasses import dataclass

from figma_for_jira.auth.connect_verifiers import InstallationNotFoundError
from figma_for_jira.auth.figma_oauth2 import FigmaAuthService
from figma_for_jira.domain.entities import ConnectInstallation, ConnectUserInfo, FigmaUser
from figma_for_jira.logging_config import get_logger
from figma_for_jira.repositories.protocol import ConnectInstallationRepository
from figma_for_jira.services.figma_service import FigmaService, FigmaServiceCredentialsError

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckAuthResult:
    authorized: bool
    authorization_endpoint: str | None = None

    def to_response(self) -> dict:
        body: dict = {"type": "3LO", "authorized": self.authorized}
        if self.authorization_endpoint is not None:
            body["grant"] = {"authorizationEndpoint": self.authorization_endpoint}
        return body


class UserAuthService:
    def __init__(
        self,
        figma_service: FigmaService,
        auth_service: FigmaAuthService,
        installations: ConnectInstallationRepository,
    ) -> None:
        self._figma_service = figma_service
        self._auth_service = auth_service
        self._installations = installations

    async def check_auth(
        self, atlassian_user_id: str, installation: ConnectInstallation
    ) -> CheckAuthResult:
        user = ConnectUserInfo(atlassian_user_id, installation.id)
        try:
            await self._figma_service.get_valid_credentials_or_raise(user)
        except FigmaServiceCredentialsError:
            return CheckAuthResult(
                authorized=False,
                authorization_endpoint=self._auth_service.build_authorization_endpoint(
                    atlassian_user_id, installation.client_key
                ),
            )
        return CheckAuthResult(authorized=True)

    async def get_current_user(
        self, atlassian_user_id: str, installation: ConnectInstallation
    ) -> FigmaUser:
        user = ConnectUserInfo(atlassian_user_id, installation.id)
        credentials = await self._figma_service.get_valid_credentials_or_raise(user)
        return await self._figma_service.get_current_user(credentials)

    async def complete_oauth2(self, code: str, state: str) -> ConnectUserInfo:
        """Verify the callback state and store the user's new credentials."""
        atlassian_user_id, client_key = self._auth_service.verify_oauth2_state(state)
        installation = await self._installations.get_by_client_key(client_key)
        if installation is None:
            raise InstallationNotFoundError(client_key)

        user = ConnectUserInfo(atlassian_user_id, installation.id)
        await self._auth_service.create_credentials(code, user)
        return user
