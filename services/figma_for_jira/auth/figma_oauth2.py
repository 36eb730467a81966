"""Figma OAuth2 credential lifecycle.

Exchanges authorization codes, stores credentials per (Atlassian user,
installation), and refreshes expired access tokens before handing them out.
The authorization redirect carries a short-lived HS256 state token that is
checked again on the callback.
"""

from datetime import datetime, timedelta
from urllib.parse import urlencode

import httpx
import jwt

from figma_for_jira.auth.connect_verifiers import JwtVerificationError
from figma_for_jira.clients.figma import FigmaClient
from figma_for_jira.clients.validation import UnexpectedResponseError
from figma_for_jira.config import Settings
from figma_for_jira.db.models import Clock, utc_now
from figma_for_jira.domain.entities import (
    ConnectUserInfo,
    FigmaOAuth2UserCredentials,
    FigmaOAuth2UserCredentialsCreateParams,
)
from figma_for_jira.logging_config import get_logger
from figma_for_jira.repositories.protocol import FigmaOAuth2UserCredentialsRepository

logger = get_logger(__name__)

OAUTH2_STATE_TTL = 300  # 5 minutes
OAUTH2_STATE_ALGORITHM = "HS256"


class FigmaCredentialsError(Exception):
    """Base class for credentials that cannot be used."""


class NoFigmaCredentialsError(FigmaCredentialsError):
    def __init__(self, user: ConnectUserInfo) -> None:
        self.user = user
        super().__init__(f"No Figma OAuth2 credentials for {user.atlassian_user_id}")


class RefreshFigmaCredentialsError(FigmaCredentialsError):
    def __init__(self, user: ConnectUserInfo) -> None:
        self.user = user
        super().__init__(f"Failed to refresh Figma OAuth2 credentials for {user.atlassian_user_id}")


class FigmaAuthService:
    def __init__(
        self,
        settings: Settings,
        figma_client: FigmaClient,
        credentials: FigmaOAuth2UserCredentialsRepository,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings
        self._figma_client = figma_client
        self._credentials = credentials
        self._clock = clock

    @property
    def redirect_uri(self) -> str:
        return f"{self._settings.app.base_url.rstrip('/')}/figma/oauth/callback"

    async def create_credentials(self, code: str, user: ConnectUserInfo) -> FigmaOAuth2UserCredentials:
        """Exchange an authorization code and replace any stored credentials."""
        now = self._clock()
        token = await self._figma_client.get_oauth2_token(code, self.redirect_uri)

        credentials = await self._credentials.upsert(
            FigmaOAuth2UserCredentialsCreateParams(
                atlassian_user_id=user.atlassian_user_id,
                access_token=token.access_token,
                refresh_token=token.refresh_token,
                expires_at=now + timedelta(seconds=token.expires_in),
                connect_installation_id=user.connect_installation_id,
            )
        )
        logger.info(
            "Stored Figma OAuth2 credentials",
            atlassian_user_id=user.atlassian_user_id,
            connect_installation_id=str(user.connect_installation_id),
        )
        return credentials

    async def get_credentials(self, user: ConnectUserInfo) -> FigmaOAuth2UserCredentials:
        """Return stored credentials, refreshing them first if they have expired."""
        now = self._clock()
        credentials = await self._credentials.get(
            user.atlassian_user_id, user.connect_installation_id
        )
        if credentials is None:
            raise NoFigmaCredentialsError(user)

        if not credentials.is_expired(now):
            return credentials

        return await self._refresh_credentials(credentials, user, now)

    async def _refresh_credentials(
        self, credentials: FigmaOAuth2UserCredentials, user: ConnectUserInfo, now: datetime
    ) -> FigmaOAuth2UserCredentials:
        try:
            refreshed = await self._figma_client.refresh_oauth2_token(credentials.refresh_token)
        except (httpx.HTTPError, UnexpectedResponseError) as e:
            logger.warning(
                "Figma OAuth2 token refresh failed",
                atlassian_user_id=user.atlassian_user_id,
                error=str(e),
            )
            raise RefreshFigmaCredentialsError(user) from e

        logger.info("Refreshed Figma OAuth2 token", atlassian_user_id=user.atlassian_user_id)
        return await self._credentials.upsert(
            FigmaOAuth2UserCredentialsCreateParams(
                atlassian_user_id=credentials.atlassian_user_id,
                access_token=refreshed.access_token,
                refresh_token=refreshed.refresh_token or credentials.refresh_token,
                expires_at=now + timedelta(seconds=refreshed.expires_in),
                connect_installation_id=credentials.connect_installation_id,
            )
        )

    def create_state(self, atlassian_user_id: str, client_key: str) -> str:
        iat = int(self._clock().timestamp())
        claims = {
            "iss": client_key,
            "sub": atlassian_user_id,
            "aud": [self._settings.app.base_url],
            "iat": iat,
            "exp": iat + OAUTH2_STATE_TTL,
        }
        return jwt.encode(
            claims,
            self._settings.figma.oauth2.state_secret_key,
            algorithm=OAUTH2_STATE_ALGORITHM,
        )

    def build_authorization_endpoint(self, atlassian_user_id: str, client_key: str) -> str:
        oauth2 = self._settings.figma.oauth2
        query = urlencode(
            {
                "client_id": oauth2.client_id,
                "redirect_uri": self.redirect_uri,
                "scope": oauth2.scope,
                "state": self.create_state(atlassian_user_id, client_key),
                "response_type": "code",
            }
        )
        return f"{self._settings.figma.web_base_url.rstrip('/')}/oauth?{query}"

    def verify_oauth2_state(self, state: str) -> tuple[str, str]:
        """Check a callback's state token. Returns ``(atlassian_user_id, client_key)``."""
        try:
            claims = jwt.decode(
                state,
                self._settings.figma.oauth2.state_secret_key,
                algorithms=[OAUTH2_STATE_ALGORITHM],
                audience=self._settings.app.base_url,
                options={"verify_exp": False, "verify_iat": False, "require": ["iss", "sub", "exp"]},
            )
        except jwt.InvalidTokenError as e:
            raise JwtVerificationError(f"Invalid OAuth2 state: {e}") from e

        if int(self._clock().timestamp()) > claims["exp"]:
            raise JwtVerificationError("OAuth2 state expired")
        return claims["sub"], claims["iss"]
