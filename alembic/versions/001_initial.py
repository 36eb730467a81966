"""Initial schema: connect_installations, figma_oauth2_user_credentials, figma_teams, associated_figma_designs.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _installation_fk() -> sa.Column:
    return sa.Column(
        "connect_installation_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("connect_installations.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "connect_installations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("client_key", sa.String(255), nullable=False, unique=True),
        sa.Column("shared_secret", sa.Text(), nullable=False),
        sa.Column("base_url", sa.Text(), nullable=False),
        sa.Column("display_url", sa.Text(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "figma_oauth2_user_credentials",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("atlassian_user_id", sa.String(255), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _installation_fk(),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "atlassian_user_id",
            "connect_installation_id",
            name="uq_figma_oauth2_user_credentials",
        ),
    )

    op.create_table(
        "figma_teams",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("webhook_id", sa.String(255), nullable=False, unique=True),
        sa.Column("webhook_passcode", sa.String(64), nullable=False),
        sa.Column("team_id", sa.String(255), nullable=False),
        sa.Column("team_name", sa.Text(), nullable=False),
        sa.Column("figma_admin_atlassian_user_id", sa.String(255), nullable=False),
        sa.Column("auth_status", sa.String(16), nullable=False, server_default="OK"),
        _installation_fk(),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("team_id", "connect_installation_id", name="uq_figma_teams"),
    )
    op.create_index(
        "ix_figma_teams_connect_installation_id", "figma_teams", ["connect_installation_id"]
    )

    op.create_table(
        "associated_figma_designs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("file_key", sa.String(255), nullable=False),
        sa.Column("node_id", sa.String(255), nullable=False, server_default=""),
        sa.Column("is_prototype", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("associated_with_ari", sa.String(255), nullable=False),
        _installation_fk(),
        _timestamp("created_at"),
        sa.UniqueConstraint(
            "file_key",
            "node_id",
            "associated_with_ari",
            "connect_installation_id",
            name="uq_associated_figma_designs",
        ),
    )
    op.create_index(
        "ix_associated_figma_designs_file_key",
        "associated_figma_designs",
        ["file_key", "connect_installation_id"],
    )


def downgrade() -> None:
    op.drop_table("associated_figma_designs")
    op.drop_table("figma_teams")
    op.drop_table("figma_oauth2_user_credentials")
    op.drop_table("connect_installations")
