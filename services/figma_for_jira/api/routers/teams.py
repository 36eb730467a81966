"""Figma team configuration endpoints.

Endpoints:
    POST   /teams/configure - connect a Figma team (server JWT, User-Id header)
    DELETE /teams/configure?teamId= - disconnect a Figma team
    GET    /teams/list - teams connected to the installation
"""

from fastapi import APIRouter, Depends, Header, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from figma_for_jira.api.container import Container
from figma_for_jira.api.dependencies import get_container, require_server_jwt
from figma_for_jira.auth.connect_verifiers import ServerAuthContext
from figma_for_jira.domain.entities import FigmaTeamSummary

router = APIRouter(prefix="/teams", tags=["teams"])


class ConfigureTeamRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_id: str = Field(alias="teamId", min_length=1)


def team_summary_to_json(team: FigmaTeamSummary) -> dict[str, str]:
    return {
        "teamId": team.team_id,
        "teamName": team.team_name,
        "authStatus": team.auth_status.value,
    }


@router.post("/configure")
async def configure_team(
    body: ConfigureTeamRequest,
    user_id: str = Header(alias="User-Id"),
    auth: ServerAuthContext = Depends(require_server_jwt),
    container: Container = Depends(get_container),
) -> dict[str, str]:
    team = await container.team_service.configure(body.team_id, user_id, auth.connect_installation)
    return team_summary_to_json(team)


@router.delete("/configure", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect_team(
    team_id: str = Query(alias="teamId", min_length=1),
    user_id: str = Header(alias="User-Id"),
    auth: ServerAuthContext = Depends(require_server_jwt),
    container: Container = Depends(get_container),
) -> Response:
    await container.team_service.disconnect(team_id, user_id, auth.connect_installation)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/list")
async def list_teams(
    auth: ServerAuthContext = Depends(require_server_jwt),
    container: Container = Depends(get_container),
) -> list[dict[str, str]]:
    teams = await container.team_service.list_teams(auth.connect_installation)
    return [team_summary_to_json(team) for team in teams]
