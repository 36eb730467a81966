"""Domain entities shared by services, repositories and routers.

Plain dataclasses, decoupled from the ORM rows in ``figma_for_jira.db.models``.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from urllib.parse import parse_qs, urlparse

from figma_for_jira.domain.errors import InvalidInputError

FIGMA_URL_REGEX = re.compile(
    r"^https://([\w.-]+\.)?figma\.com/(file|proto|design)/([0-9a-zA-Z]+)(?:[/?#].*)?$"
)
ISSUE_ASSOCIATED_DESIGN_RELATIONSHIP_TYPE = "issue-has-design"
JIRA_ISSUE_ATI = "ari:cloud:jira:issue"


@dataclass(frozen=True)
class ConnectInstallation:
    """A Jira site that installed the app."""

    id: uuid.UUID
    key: str
    client_key: str
    shared_secret: str = field(repr=False)
    base_url: str
    display_url: str


@dataclass(frozen=True)
class ConnectInstallationCreateParams:
    key: str
    client_key: str
    shared_secret: str = field(repr=False)
    base_url: str
    display_url: str


@dataclass(frozen=True)
class ConnectUserInfo:
    """An Atlassian user acting within an installation."""

    atlassian_user_id: str
    connect_installation_id: uuid.UUID


@dataclass(frozen=True)
class FigmaOAuth2UserCredentials:
    id: uuid.UUID
    atlassian_user_id: str
    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    expires_at: datetime
    connect_installation_id: uuid.UUID

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class FigmaOAuth2UserCredentialsCreateParams:
    atlassian_user_id: str
    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    expires_at: datetime
    connect_installation_id: uuid.UUID


class FigmaTeamAuthStatus(StrEnum):
    OK = "OK"
    ERROR = "ERROR"


@dataclass(frozen=True)
class FigmaTeam:
    id: uuid.UUID
    webhook_id: str
    webhook_passcode: str = field(repr=False)
    team_id: str
    team_name: str
    figma_admin_atlassian_user_id: str
    auth_status: FigmaTeamAuthStatus
    connect_installation_id: uuid.UUID

    def to_summary(self) -> "FigmaTeamSummary":
        return FigmaTeamSummary(
            team_id=self.team_id, team_name=self.team_name, auth_status=self.auth_status
        )


@dataclass(frozen=True)
class FigmaTeamCreateParams:
    webhook_id: str
    webhook_passcode: str = field(repr=False)
    team_id: str
    team_name: str
    figma_admin_atlassian_user_id: str
    auth_status: FigmaTeamAuthStatus
    connect_installation_id: uuid.UUID


@dataclass(frozen=True)
class FigmaTeamSummary:
    team_id: str
    team_name: str
    auth_status: FigmaTeamAuthStatus


@dataclass(frozen=True)
class FigmaDesignIdentifier:
    """A Figma file, or a node within a file.

    Node ids are stored in API form (``1:2``); URLs carry them as ``1-2``.
    ``is_prototype`` records that the design was linked through a ``/proto/``
    URL; it does not change the Atlassian design id.
    """

    file_key: str
    node_id: str | None = None
    is_prototype: bool = False

    @property
    def node_id_or_default(self) -> str:
        return self.node_id or "0:0"

    def to_atlassian_design_id(self) -> str:
        return f"{self.file_key}/{self.node_id}" if self.node_id else self.file_key

    @classmethod
    def from_atlassian_design_id(cls, design_id: str) -> "FigmaDesignIdentifier":
        file_key, _, node_id = design_id.partition("/")
        if not file_key:
            raise InvalidInputError(f"Invalid design id: {design_id!r}")
        return cls(file_key=file_key, node_id=node_id or None)

    @classmethod
    def from_figma_design_url(cls, url: str) -> "FigmaDesignIdentifier":
        match = FIGMA_URL_REGEX.match(url)
        if match is None:
            raise InvalidInputError(f"Not a Figma design URL: {url!r}")
        node_ids = parse_qs(urlparse(url).query).get("node-id")
        node_id = node_ids[0].replace("-", ":") if node_ids else None
        return cls(
            file_key=match.group(3), node_id=node_id, is_prototype=match.group(2) == "proto"
        )

    def __str__(self) -> str:
        return self.to_atlassian_design_id()


@dataclass(frozen=True)
class AssociatedFigmaDesign:
    id: uuid.UUID
    design_id: FigmaDesignIdentifier
    associated_with_ari: str
    connect_installation_id: uuid.UUID


@dataclass(frozen=True)
class AssociatedFigmaDesignCreateParams:
    design_id: FigmaDesignIdentifier
    associated_with_ari: str
    connect_installation_id: uuid.UUID


class AtlassianDesignStatus(StrEnum):
    READY_FOR_DEVELOPMENT = "READY_FOR_DEVELOPMENT"
    UNKNOWN = "UNKNOWN"
    NONE = "NONE"


class AtlassianDesignType(StrEnum):
    FILE = "FILE"
    CANVAS = "CANVAS"
    GROUP = "GROUP"
    NODE = "NODE"
    PROTOTYPE = "PROTOTYPE"
    OTHER = "OTHER"


@dataclass(frozen=True)
class AtlassianDesign:
    """Design entity in the shape Jira's design ingestion API accepts."""

    id: str
    display_name: str
    url: str
    live_embed_url: str
    inspect_url: str
    status: AtlassianDesignStatus
    type: AtlassianDesignType
    last_updated: datetime
    update_sequence_number: int


@dataclass(frozen=True)
class AtlassianAssociation:
    association_type: str
    values: list[str]

    @classmethod
    def for_issue(cls, issue_ari: str) -> "AtlassianAssociation":
        return cls(association_type=ISSUE_ASSOCIATED_DESIGN_RELATIONSHIP_TYPE, values=[issue_ari])


@dataclass(frozen=True)
class JiraIssue:
    id: str
    key: str
    summary: str


@dataclass(frozen=True)
class FigmaUser:
    id: str
    handle: str
    email: str
    img_url: str
