"""Atlassian Connect lifecycle callbacks.

Endpoints:
    POST /lifecycleEvents/installed - store or update the installation
    POST /lifecycleEvents/uninstalled - remove webhooks and installation data
    POST /lifecycleEvents/enabled - acknowledge
    POST /lifecycleEvents/disabled - acknowledge
"""

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field

from figma_for_jira.api.container import Container
from figma_for_jira.api.dependencies import (
    get_container,
    require_lifecycle_jwt,
    require_server_jwt,
)
from figma_for_jira.auth.connect_jwt import ConnectJwtTokenClaims
from figma_for_jira.auth.connect_verifiers import JwtVerificationError, ServerAuthContext
from figma_for_jira.domain.entities import ConnectInstallationCreateParams
from figma_for_jira.domain.errors import InvalidInputError
from figma_for_jira.logging_config import get_logger

router = APIRouter(prefix="/lifecycleEvents", tags=["lifecycle"])
logger = get_logger(__name__)


class LifecycleEventRequest(BaseModel):
    """Body Jira posts to every lifecycle callback. Unknown fields are ignored."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    client_key: str = Field(alias="clientKey")
    shared_secret: str | None = Field(default=None, alias="sharedSecret", repr=False)
    base_url: str = Field(alias="baseUrl")
    display_url: str | None = Field(default=None, alias="displayUrl")
    event_type: str | None = Field(default=None, alias="eventType")


def _require_matching_client_key(claims: ConnectJwtTokenClaims, body: LifecycleEventRequest) -> None:
    if claims.iss != body.client_key:
        raise JwtVerificationError("JWT issuer does not match clientKey")


@router.post("/installed", status_code=status.HTTP_204_NO_CONTENT)
async def installed(
    body: LifecycleEventRequest,
    claims: ConnectJwtTokenClaims = Depends(require_lifecycle_jwt),
    container: Container = Depends(get_container),
) -> Response:
    _require_matching_client_key(claims, body)
    if not body.shared_secret:
        raise InvalidInputError("installed callback without sharedSecret")

    await container.lifecycle_service.installed(
        ConnectInstallationCreateParams(
            key=body.key,
            client_key=body.client_key,
            shared_secret=body.shared_secret,
            base_url=body.base_url,
            display_url=body.display_url or body.base_url,
        )
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/uninstalled", status_code=status.HTTP_204_NO_CONTENT)
async def uninstalled(
    body: LifecycleEventRequest,
    claims: ConnectJwtTokenClaims = Depends(require_lifecycle_jwt),
    container: Container = Depends(get_container),
) -> Response:
    _require_matching_client_key(claims, body)
    await container.lifecycle_service.uninstalled(body.client_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/enabled", status_code=status.HTTP_204_NO_CONTENT)
async def enabled(auth: ServerAuthContext = Depends(require_server_jwt)) -> Response:
    logger.info("App enabled", client_key=auth.connect_installation.client_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/disabled", status_code=status.HTTP_204_NO_CONTENT)
async def disabled(auth: ServerAuthContext = Depends(require_server_jwt)) -> Response:
    logger.info("App disabled", client_key=auth.connect_installation.client_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
