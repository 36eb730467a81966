"""
Liveness and readiness checks.

/ready fails until the database answers and the component container is built;
without both no Connect request can be verified.
"""

from fastapi import APIRouter, Request, Response, status

from figma_for_jira.db.session import get_db_health
from figma_for_jira.logging_config import get_logger

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    """Liveness endpoint."""
    return {"status": "healthy"}


@router.get("/ready", status_code=status.HTTP_200_OK)
async def ready(request: Request, response: Response) -> dict[str, str | dict[str, str]]:
    checks = {
        "database": "healthy" if await get_db_health() else "unhealthy",
        "components": "healthy" if request.app.state.container is not None else "unhealthy",
    }

    if any(v != "healthy" for v in checks.values()):
        logger.warning("Readiness check failed", checks=checks)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not ready", "checks": checks}

    return {"status": "ready", "checks": checks}
