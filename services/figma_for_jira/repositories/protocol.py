"""Repository contracts used by services and use cases.

A lookup that finds nothing returns ``None``; every other failure raises.
Callers branch on the returned value instead of catching not-found errors.
"""

import uuid
from typing import Protocol, runtime_checkable

from figma_for_jira.domain.entities import (
    AssociatedFigmaDesign,
    AssociatedFigmaDesignCreateParams,
    ConnectInstallation,
    ConnectInstallationCreateParams,
    FigmaDesignIdentifier,
    FigmaOAuth2UserCredentials,
    FigmaOAuth2UserCredentialsCreateParams,
    FigmaTeam,
    FigmaTeamAuthStatus,
    FigmaTeamCreateParams,
)


@runtime_checkable
class ConnectInstallationRepository(Protocol):
    async def get_by_id(self, id: uuid.UUID) -> ConnectInstallation | None: ...

    async def get_by_client_key(self, client_key: str) -> ConnectInstallation | None: ...

    async def upsert(self, params: ConnectInstallationCreateParams) -> ConnectInstallation: ...

    async def delete_by_client_key(self, client_key: str) -> bool:
        """Delete the installation and, by cascade, everything it owns."""
        ...


@runtime_checkable
class FigmaOAuth2UserCredentialsRepository(Protocol):
    async def get(
        self, atlassian_user_id: str, connect_installation_id: uuid.UUID
    ) -> FigmaOAuth2UserCredentials | None: ...

    async def upsert(
        self, params: FigmaOAuth2UserCredentialsCreateParams
    ) -> FigmaOAuth2UserCredentials: ...


@runtime_checkable
class FigmaTeamRepository(Protocol):
    async def get_by_webhook_id(self, webhook_id: str) -> FigmaTeam | None: ...

    async def get_by_team_id_and_installation_id(
        self, team_id: str, connect_installation_id: uuid.UUID
    ) -> FigmaTeam | None: ...

    async def find_many_by_installation_id(
        self, connect_installation_id: uuid.UUID
    ) -> list[FigmaTeam]: ...

    async def upsert(self, params: FigmaTeamCreateParams) -> FigmaTeam: ...

    async def update_auth_status(self, id: uuid.UUID, auth_status: FigmaTeamAuthStatus) -> None: ...

    async def update_team_name(self, id: uuid.UUID, team_name: str) -> None: ...

    async def delete(self, id: uuid.UUID) -> bool: ...


@runtime_checkable
class AssociatedFigmaDesignRepository(Protocol):
    async def upsert(self, params: AssociatedFigmaDesignCreateParams) -> AssociatedFigmaDesign: ...

    async def find_many_by_file_key_and_installation_id(
        self, file_key: str, connect_installation_id: uuid.UUID
    ) -> list[AssociatedFigmaDesign]: ...

    async def delete_by_design_id_and_installation_id(
        self,
        design_id: FigmaDesignIdentifier,
        associated_with_ari: str,
        connect_installation_id: uuid.UUID,
    ) -> bool: ...
