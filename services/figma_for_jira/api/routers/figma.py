"""Endpoints Figma calls directly.

Endpoints:
    POST /figma/webhook - Figma webhook delivery (authenticated by passcode)
    GET  /figma/oauth/callback - end of the 3LO flow, redirects the browser
"""

import json

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from figma_for_jira.api.container import Container
from figma_for_jira.api.dependencies import get_container
from figma_for_jira.domain.errors import InvalidInputError
from figma_for_jira.logging_config import get_logger
from figma_for_jira.services.webhook_service import FigmaWebhookEventPayload

router = APIRouter(prefix="/figma", tags=["figma"])
logger = get_logger(__name__)


@router.post("/webhook")
async def figma_webhook(
    request: Request,
    container: Container = Depends(get_container),
) -> dict[str, str]:
    """Receive a Figma webhook event.

    The payload is parsed here rather than by FastAPI so that a malformed
    delivery is answered with 400 instead of 422.
    """
    body = await request.body()
    try:
        payload = FigmaWebhookEventPayload.model_validate(json.loads(body))
    except (ValueError, ValidationError) as e:
        logger.warning("Rejected malformed Figma webhook payload", error=str(e))
        raise InvalidInputError("Malformed Figma webhook payload") from e

    await container.webhook_service.handle_event(payload)
    return {"message": "ok"}


@router.get("/oauth/callback")
async def oauth_callback(
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    container: Container = Depends(get_container),
) -> RedirectResponse:
    """Complete the Figma OAuth2 flow and send the browser to the result page."""
    oauth2 = container.settings.figma.oauth2
    if not code or not state:
        logger.warning("Figma OAuth2 callback without code or state")
        return RedirectResponse(url=oauth2.failure_page_url, status_code=302)

    try:
        user = await container.user_auth_service.complete_oauth2(code, state)
    except Exception as e:
        logger.warning("Figma OAuth2 callback failed", error=str(e), error_type=type(e).__name__)
        return RedirectResponse(url=oauth2.failure_page_url, status_code=302)

    logger.info(
        "Figma OAuth2 credentials stored",
        atlassian_user_id=user.atlassian_user_id,
        connect_installation_id=str(user.connect_installation_id),
    )
    return RedirectResponse(url=oauth2.success_page_url, status_code=302)
