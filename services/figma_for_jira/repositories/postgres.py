"""PostgreSQL implementations of the repository contracts.

Upserts are single ``INSERT ... ON CONFLICT DO UPDATE`` statements, so each is
atomic per row.
"""

import uuid

from sqlalchemy import ColumnElement, delete, select, update
from sqlalchemy.dialects.postgresql import insert

from figma_for_jira.db import models
from figma_for_jira.db.models import utc_now
from figma_for_jira.db.session import SessionFactory, get_db_session
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
from figma_for_jira.services.encryption_service import TokenCipher


def _to_installation(row: models.ConnectInstallation) -> ConnectInstallation:
    return ConnectInstallation(
        id=row.id,
        key=row.key,
        client_key=row.client_key,
        shared_secret=row.shared_secret,
        base_url=row.base_url,
        display_url=row.display_url,
    )


def _to_team(row: models.FigmaTeam) -> FigmaTeam:
    return FigmaTeam(
        id=row.id,
        webhook_id=row.webhook_id,
        webhook_passcode=row.webhook_passcode,
        team_id=row.team_id,
        team_name=row.team_name,
        figma_admin_atlassian_user_id=row.figma_admin_atlassian_user_id,
        auth_status=FigmaTeamAuthStatus(row.auth_status),
        connect_installation_id=row.connect_installation_id,
    )


def _to_associated_design(row: models.AssociatedFigmaDesign) -> AssociatedFigmaDesign:
    return AssociatedFigmaDesign(
        id=row.id,
        design_id=FigmaDesignIdentifier(
            file_key=row.file_key, node_id=row.node_id or None, is_prototype=row.is_prototype
        ),
        associated_with_ari=row.associated_with_ari,
        connect_installation_id=row.connect_installation_id,
    )


class PostgresConnectInstallationRepository:
    def __init__(self, session_factory: SessionFactory = get_db_session) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, id: uuid.UUID) -> ConnectInstallation | None:
        async with self._session_factory() as db:
            row = await db.get(models.ConnectInstallation, id)
            return _to_installation(row) if row is not None else None

    async def get_by_client_key(self, client_key: str) -> ConnectInstallation | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(models.ConnectInstallation).where(
                    models.ConnectInstallation.client_key == client_key
                )
            )
            row = result.scalar_one_or_none()
            return _to_installation(row) if row is not None else None

    async def upsert(self, params: ConnectInstallationCreateParams) -> ConnectInstallation:
        values = {
            "key": params.key,
            "client_key": params.client_key,
            "shared_secret": params.shared_secret,
            "base_url": params.base_url,
            "display_url": params.display_url,
        }
        stmt = (
            insert(models.ConnectInstallation)
            .values(id=models.generate_uuid7(), **values)
            .on_conflict_do_update(
                index_elements=["client_key"], set_={**values, "updated_at": utc_now()}
            )
            .returning(models.ConnectInstallation)
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt, execution_options={"populate_existing": True})
            return _to_installation(result.scalar_one())

    async def delete_by_client_key(self, client_key: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                delete(models.ConnectInstallation).where(
                    models.ConnectInstallation.client_key == client_key
                )
            )
            return result.rowcount > 0


class PostgresFigmaOAuth2UserCredentialsRepository:
    """Credentials storage. Token columns pass through ``TokenCipher``."""

    def __init__(
        self, cipher: TokenCipher, session_factory: SessionFactory = get_db_session
    ) -> None:
        self._cipher = cipher
        self._session_factory = session_factory

    def _to_credentials(self, row: models.FigmaOAuth2UserCredentials) -> FigmaOAuth2UserCredentials:
        return FigmaOAuth2UserCredentials(
            id=row.id,
            atlassian_user_id=row.atlassian_user_id,
            access_token=self._cipher.decrypt(row.access_token),
            refresh_token=self._cipher.decrypt(row.refresh_token),
            expires_at=row.expires_at,
            connect_installation_id=row.connect_installation_id,
        )

    async def get(
        self, atlassian_user_id: str, connect_installation_id: uuid.UUID
    ) -> FigmaOAuth2UserCredentials | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(models.FigmaOAuth2UserCredentials).where(
                    models.FigmaOAuth2UserCredentials.atlassian_user_id == atlassian_user_id,
                    models.FigmaOAuth2UserCredentials.connect_installation_id
                    == connect_installation_id,
                )
            )
            row = result.scalar_one_or_none()
            return self._to_credentials(row) if row is not None else None

    async def upsert(
        self, params: FigmaOAuth2UserCredentialsCreateParams
    ) -> FigmaOAuth2UserCredentials:
        values = {
            "access_token": self._cipher.encrypt(params.access_token),
            "refresh_token": self._cipher.encrypt(params.refresh_token),
            "expires_at": params.expires_at,
        }
        stmt = (
            insert(models.FigmaOAuth2UserCredentials)
            .values(
                id=models.generate_uuid7(),
                atlassian_user_id=params.atlassian_user_id,
                connect_installation_id=params.connect_installation_id,
                **values,
            )
            .on_conflict_do_update(
                index_elements=["atlassian_user_id", "connect_installation_id"],
                set_={**values, "updated_at": utc_now()},
            )
            .returning(models.FigmaOAuth2UserCredentials)
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt, execution_options={"populate_existing": True})
            return self._to_credentials(result.scalar_one())


class PostgresFigmaTeamRepository:
    def __init__(self, session_factory: SessionFactory = get_db_session) -> None:
        self._session_factory = session_factory

    async def _get_one(self, *criteria: ColumnElement[bool]) -> FigmaTeam | None:
        async with self._session_factory() as db:
            result = await db.execute(select(models.FigmaTeam).where(*criteria))
            row = result.scalar_one_or_none()
            return _to_team(row) if row is not None else None

    async def get_by_webhook_id(self, webhook_id: str) -> FigmaTeam | None:
        return await self._get_one(models.FigmaTeam.webhook_id == webhook_id)

    async def get_by_team_id_and_installation_id(
        self, team_id: str, connect_installation_id: uuid.UUID
    ) -> FigmaTeam | None:
        return await self._get_one(
            models.FigmaTeam.team_id == team_id,
            models.FigmaTeam.connect_installation_id == connect_installation_id,
        )

    async def find_many_by_installation_id(
        self, connect_installation_id: uuid.UUID
    ) -> list[FigmaTeam]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(models.FigmaTeam)
                .where(models.FigmaTeam.connect_installation_id == connect_installation_id)
                .order_by(models.FigmaTeam.created_at)
            )
            return [_to_team(row) for row in result.scalars().all()]

    async def upsert(self, params: FigmaTeamCreateParams) -> FigmaTeam:
        values = {
            "webhook_id": params.webhook_id,
            "webhook_passcode": params.webhook_passcode,
            "team_name": params.team_name,
            "figma_admin_atlassian_user_id": params.figma_admin_atlassian_user_id,
            "auth_status": params.auth_status.value,
        }
        stmt = (
            insert(models.FigmaTeam)
            .values(
                id=models.generate_uuid7(),
                team_id=params.team_id,
                connect_installation_id=params.connect_installation_id,
                **values,
            )
            .on_conflict_do_update(
                index_elements=["team_id", "connect_installation_id"],
                set_={**values, "updated_at": utc_now()},
            )
            .returning(models.FigmaTeam)
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt, execution_options={"populate_existing": True})
            return _to_team(result.scalar_one())

    async def update_auth_status(self, id: uuid.UUID, auth_status: FigmaTeamAuthStatus) -> None:
        async with self._session_factory() as db:
            await db.execute(
                update(models.FigmaTeam)
                .where(models.FigmaTeam.id == id)
                .values(auth_status=auth_status.value, updated_at=utc_now())
            )

    async def update_team_name(self, id: uuid.UUID, team_name: str) -> None:
        async with self._session_factory() as db:
            await db.execute(
                update(models.FigmaTeam)
                .where(models.FigmaTeam.id == id)
                .values(team_name=team_name, updated_at=utc_now())
            )

    async def delete(self, id: uuid.UUID) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(delete(models.FigmaTeam).where(models.FigmaTeam.id == id))
            return result.rowcount > 0


class PostgresAssociatedFigmaDesignRepository:
    def __init__(self, session_factory: SessionFactory = get_db_session) -> None:
        self._session_factory = session_factory

    async def upsert(self, params: AssociatedFigmaDesignCreateParams) -> AssociatedFigmaDesign:
        key = {
            "file_key": params.design_id.file_key,
            "node_id": params.design_id.node_id or "",
            "associated_with_ari": params.associated_with_ari,
            "connect_installation_id": params.connect_installation_id,
        }
        stmt = (
            insert(models.AssociatedFigmaDesign)
            .values(id=models.generate_uuid7(), is_prototype=params.design_id.is_prototype, **key)
            .on_conflict_do_update(
                index_elements=list(key),
                set_={"is_prototype": params.design_id.is_prototype},
            )
            .returning(models.AssociatedFigmaDesign)
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt, execution_options={"populate_existing": True})
            return _to_associated_design(result.scalar_one())

    async def find_many_by_file_key_and_installation_id(
        self, file_key: str, connect_installation_id: uuid.UUID
    ) -> list[AssociatedFigmaDesign]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(models.AssociatedFigmaDesign).where(
                    models.AssociatedFigmaDesign.file_key == file_key,
                    models.AssociatedFigmaDesign.connect_installation_id
                    == connect_installation_id,
                )
            )
            return [_to_associated_design(row) for row in result.scalars().all()]

    async def delete_by_design_id_and_installation_id(
        self,
        design_id: FigmaDesignIdentifier,
        associated_with_ari: str,
        connect_installation_id: uuid.UUID,
    ) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                delete(models.AssociatedFigmaDesign).where(
                    models.AssociatedFigmaDesign.file_key == design_id.file_key,
                    models.AssociatedFigmaDesign.node_id == (design_id.node_id or ""),
                    models.AssociatedFigmaDesign.associated_with_ari == associated_with_ari,
                    models.AssociatedFigmaDesign.connect_installation_id
                    == connect_installation_id,
                )
            )
            return result.rowcount > 0
