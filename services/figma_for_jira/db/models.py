"""
SQLAlchemy database models for Figma for Jira.

All models use:
- UUIDv7 primary keys (time-sortable)
- snake_case column names
- Plural table names
- TIMESTAMPTZ with UTC for all timestamps
- ON DELETE CASCADE from every row owned by a Connect installation
"""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def generate_uuid7() -> uuid.UUID:
    """Generate a UUIDv7 (time-sortable UUID)."""
    import time

    timestamp_ms = int(time.time() * 1000)
    rand_bytes = uuid.uuid4().bytes[6:]

    uuid_bytes = (
        timestamp_ms.to_bytes(6, "big")
        + bytes([0x70 | (rand_bytes[0] & 0x0F)])  # Version 7
        + bytes([0x80 | (rand_bytes[1] & 0x3F)])  # Variant
        + rand_bytes[2:]
    )
    return uuid.UUID(bytes=uuid_bytes)


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


# Injectable time source; services read it once per operation.
Clock = Callable[[], datetime]


class Base(DeclarativeBase):
    """Base class for all models."""


class ConnectInstallation(Base):
    """A Jira site that installed the app.

    Created or refreshed by the ``installed`` lifecycle callback. Deleting a row
    cascades to credentials, teams and associated designs.
    """

    __tablename__ = "connect_installations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=generate_uuid7
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    client_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    shared_secret: Mapped[str] = mapped_column(Text, nullable=False)
    base_url: Mapped[str] = mapped_column(Text, nullable=False)
    display_url: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


class FigmaOAuth2UserCredentials(Base):
    """Figma OAuth2 tokens for one Atlassian user within one installation.

    Token columns hold Fernet ciphertext when an encryption key is configured.
    """

    __tablename__ = "figma_oauth2_user_credentials"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=generate_uuid7
    )
    atlassian_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    connect_installation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("connect_installations.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "atlassian_user_id",
            "connect_installation_id",
            name="uq_figma_oauth2_user_credentials",
        ),
    )


class FigmaTeam(Base):
    """A Figma team connected to an installation via a FILE_UPDATE webhook."""

    __tablename__ = "figma_teams"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=generate_uuid7
    )
    webhook_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    webhook_passcode: Mapped[str] = mapped_column(String(64), nullable=False)
    team_id: Mapped[str] = mapped_column(String(255), nullable=False)
    team_name: Mapped[str] = mapped_column(Text, nullable=False)
    figma_admin_atlassian_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    auth_status: Mapped[str] = mapped_column(String(16), nullable=False, default="OK")
    connect_installation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("connect_installations.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        sa.UniqueConstraint("team_id", "connect_installation_id", name="uq_figma_teams"),
        Index("ix_figma_teams_connect_installation_id", "connect_installation_id"),
    )


class AssociatedFigmaDesign(Base):
    """A Figma design linked to an Atlassian entity (a Jira issue)."""

    __tablename__ = "associated_figma_designs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=generate_uuid7
    )
    file_key: Mapped[str] = mapped_column(String(255), nullable=False)
    node_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")  # "" = file
    is_prototype: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    associated_with_ari: Mapped[str] = mapped_column(String(255), nullable=False)
    connect_installation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("connect_installations.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "file_key",
            "node_id",
            "associated_with_ari",
            "connect_installation_id",
            name="uq_associated_figma_designs",
        ),
        Index(
            "ix_associated_figma_designs_file_key",
            "file_key",
            "connect_installation_id",
        ),
    )
