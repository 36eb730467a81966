"""Design association endpoints, called by Jira's design panel.

Endpoints:
    POST /entities/associateEntity - link a Figma URL to a Jira issue
    POST /entities/disassociateEntity - unlink a design from a Jira issue
"""

from typing import Any

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, ConfigDict, Field

from figma_for_jira.api.container import Container
from figma_for_jira.api.dependencies import get_container, require_server_jwt
from figma_for_jira.auth.connect_verifiers import ServerAuthContext
from figma_for_jira.domain.entities import JIRA_ISSUE_ATI, AtlassianDesign, FigmaDesignIdentifier
from figma_for_jira.domain.errors import InvalidInputError

router = APIRouter(prefix="/entities", tags=["entities"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AssociateWith(_CamelModel):
    ari: str
    cloud_id: str = Field(alias="cloudId")
    type: str
    id: str


class AssociateEntityRequest(_CamelModel):
    class Entity(BaseModel):
        url: str

    entity: Entity
    associate_with: AssociateWith = Field(alias="associateWith")


class DisassociateFrom(_CamelModel):
    ari: str
    ati: str
    type: str | None = None
    id: str
    cloud_id: str | None = Field(default=None, alias="cloudId")


class DisassociateEntityRequest(_CamelModel):
    class Entity(BaseModel):
        ari: str
        id: str

    entity: Entity
    disassociate_from: DisassociateFrom = Field(alias="disassociateFrom")


def design_to_json(design: AtlassianDesign) -> dict[str, Any]:
    return {
        "id": design.id,
        "displayName": design.display_name,
        "url": design.url,
        "liveEmbedUrl": design.live_embed_url,
        "inspectUrl": design.inspect_url,
        "status": design.status.value,
        "type": design.type.value,
        "lastUpdated": design.last_updated.isoformat(),
        "updateSequenceNumber": design.update_sequence_number,
    }


@router.post("/associateEntity")
async def associate_entity(
    body: AssociateEntityRequest,
    user_id: str = Header(alias="User-Id"),
    auth: ServerAuthContext = Depends(require_server_jwt),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    design_id = FigmaDesignIdentifier.from_figma_design_url(body.entity.url)
    design = await container.design_sync_service.associate(
        design_id,
        design_url=body.entity.url,
        issue_ari=body.associate_with.ari,
        issue_id=body.associate_with.id,
        atlassian_user_id=user_id,
        installation=auth.connect_installation,
    )
    return {"design": design_to_json(design)}


@router.post("/disassociateEntity")
async def disassociate_entity(
    body: DisassociateEntityRequest,
    user_id: str = Header(alias="User-Id"),
    auth: ServerAuthContext = Depends(require_server_jwt),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    if body.disassociate_from.ati != JIRA_ISSUE_ATI:
        raise InvalidInputError(f"Cannot disassociate from {body.disassociate_from.ati}")

    design_id = FigmaDesignIdentifier.from_atlassian_design_id(body.entity.id)
    design = await container.design_sync_service.disassociate(
        design_id,
        issue_ari=body.disassociate_from.ari,
        issue_id=body.disassociate_from.id,
        atlassian_user_id=user_id,
        installation=auth.connect_installation,
    )
    return {"design": design_to_json(design)}
