"""Construction of the app's components.

Everything a request handler needs hangs off one ``Container``, built once in
the application lifespan and stored on ``app.state``. Tests build their own
with fakes in place of repositories or clients.
"""

from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

from figma_for_jira.auth.connect_verifiers import (
    AsymmetricLifecycleJwtVerifier,
    ContextSymmetricJwtVerifier,
    ServerSymmetricJwtVerifier,
)
from figma_for_jira.auth.figma_oauth2 import FigmaAuthService
from figma_for_jira.clients.figma import FigmaClient
from figma_for_jira.clients.jira import JiraClient
from figma_for_jira.config import Settings
from figma_for_jira.db.models import Clock, utc_now
from figma_for_jira.repositories.postgres import (
    PostgresAssociatedFigmaDesignRepository,
    PostgresConnectInstallationRepository,
    PostgresFigmaOAuth2UserCredentialsRepository,
    PostgresFigmaTeamRepository,
)
from figma_for_jira.repositories.protocol import (
    AssociatedFigmaDesignRepository,
    ConnectInstallationRepository,
    FigmaOAuth2UserCredentialsRepository,
    FigmaTeamRepository,
)
from figma_for_jira.services.design_sync_service import DesignSyncService
from figma_for_jira.services.encryption_service import TokenCipher
from figma_for_jira.services.figma_service import FigmaService
from figma_for_jira.services.jira_service import JiraService
from figma_for_jira.services.lifecycle_service import LifecycleService
from figma_for_jira.services.team_service import TeamService
from figma_for_jira.services.user_auth_service import UserAuthService
from figma_for_jira.services.webhook_service import WebhookService


@dataclass
class Container:
    settings: Settings
    lifecycle_verifier: AsymmetricLifecycleJwtVerifier
    server_verifier: ServerSymmetricJwtVerifier
    context_verifier: ContextSymmetricJwtVerifier
    figma_auth_service: FigmaAuthService
    lifecycle_service: LifecycleService
    user_auth_service: UserAuthService
    design_sync_service: DesignSyncService
    team_service: TeamService
    webhook_service: WebhookService


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            settings.http.timeout_seconds, connect=settings.http.connect_timeout_seconds
        ),
        headers={"User-Agent": settings.app_name},
    )


def build_container(
    settings: Settings,
    http: httpx.AsyncClient,
    installations: ConnectInstallationRepository | None = None,
    credentials: FigmaOAuth2UserCredentialsRepository | None = None,
    figma_teams: FigmaTeamRepository | None = None,
    associated_designs: AssociatedFigmaDesignRepository | None = None,
    clock: Clock = utc_now,
) -> Container:
    """Wire components. Repositories default to the PostgreSQL implementations."""
    installations = installations or PostgresConnectInstallationRepository()
    credentials = credentials or PostgresFigmaOAuth2UserCredentialsRepository(
        TokenCipher(settings.encryption_key)
    )
    figma_teams = figma_teams or PostgresFigmaTeamRepository()
    associated_designs = associated_designs or PostgresAssociatedFigmaDesignRepository()

    base_path = urlsplit(settings.app.base_url).path

    figma_client = FigmaClient(http, settings.figma)
    jira_client = JiraClient(
        http, clock=clock, token_expires_in_seconds=settings.jira.jwt_token_expires_in_seconds
    )

    figma_auth_service = FigmaAuthService(settings, figma_client, credentials, clock)
    figma_service = FigmaService(settings, figma_client, figma_auth_service)
    jira_service = JiraService(jira_client, clock)

    return Container(
        settings=settings,
        lifecycle_verifier=AsymmetricLifecycleJwtVerifier(
            http,
            keys_base_url=settings.jira.connect_keys_base_url,
            audience=settings.app.base_url,
            base_path=base_path,
            clock=clock,
        ),
        server_verifier=ServerSymmetricJwtVerifier(installations, base_path, clock),
        context_verifier=ContextSymmetricJwtVerifier(installations, clock),
        figma_auth_service=figma_auth_service,
        lifecycle_service=LifecycleService(installations, figma_teams, figma_service),
        user_auth_service=UserAuthService(figma_service, figma_auth_service, installations),
        design_sync_service=DesignSyncService(figma_service, jira_service, associated_designs),
        team_service=TeamService(figma_service, jira_service, figma_teams),
        webhook_service=WebhookService(
            figma_service, jira_service, installations, figma_teams, associated_designs
        ),
    )
