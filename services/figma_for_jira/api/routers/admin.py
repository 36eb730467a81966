"""Endpoints for the app's admin page, authenticated with a context JWT.

The page runs in an iframe inside Jira and forwards its context token as
``?jwt=``; the Atlassian user is the token's ``sub``.

Endpoints:
    GET /admin/auth/checkAuth - 3LO status of the current user
    GET /admin/teams - teams connected to the installation
    POST /admin/teams/{team_id}/connect - connect a Figma team as the current user
"""

from fastapi import APIRouter, Depends

from figma_for_jira.api.container import Container
from figma_for_jira.api.dependencies import get_container, require_context_jwt
from figma_for_jira.api.routers.teams import team_summary_to_json
from figma_for_jira.auth.connect_verifiers import ContextAuthContext

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/auth/checkAuth")
async def admin_check_auth(
    auth: ContextAuthContext = Depends(require_context_jwt),
    container: Container = Depends(get_container),
) -> dict:
    result = await container.user_auth_service.check_auth(
        auth.atlassian_user_id, auth.connect_installation
    )
    return result.to_response()


@router.get("/teams")
async def admin_list_teams(
    auth: ContextAuthContext = Depends(require_context_jwt),
    container: Container = Depends(get_container),
) -> list[dict[str, str]]:
    teams = await container.team_service.list_teams(auth.connect_installation)
    return [team_summary_to_json(team) for team in teams]


@router.post("/teams/{team_id}/connect")
async def admin_connect_team(
    team_id: str,
    auth: ContextAuthContext = Depends(require_context_jwt),
    container: Container = Depends(get_container),
) -> dict[str, str]:
    team = await container.team_service.configure(
        team_id, auth.atlassian_user_id, auth.connect_installation
    )
    return team_summary_to_json(team)
