"""Per-user Figma authorization endpoints, called by Jira with a server JWT.

Endpoints:
    GET /auth/checkAuth?userId= - 3LO status, with the authorization URL when missing
    GET /auth/me?userId= - the Figma user behind the stored credentials
"""

from fastapi import APIRouter, Depends, Query

from figma_for_jira.api.container import Container
from figma_for_jira.api.dependencies import get_container, require_server_jwt
from figma_for_jira.auth.connect_verifiers import ServerAuthContext

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/checkAuth")
async def check_auth(
    user_id: str = Query(alias="userId"),
    auth: ServerAuthContext = Depends(require_server_jwt),
    container: Container = Depends(get_container),
) -> dict:
    result = await container.user_auth_service.check_auth(user_id, auth.connect_installation)
    return result.to_response()


@router.get("/me")
async def me(
    user_id: str = Query(alias="userId"),
    auth: ServerAuthContext = Depends(require_server_jwt),
    container: Container = Depends(get_container),
) -> dict[str, str]:
    user = await container.user_auth_service.get_current_user(user_id, auth.connect_installation)
    return {"id": user.id, "handle": user.handle, "email": user.email, "img_url": user.img_url}
