"""Mapping from domain exceptions to HTTP responses.

Components raise typed exceptions; this module is the only place that
decides their status codes.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from figma_for_jira.auth.connect_verifiers import JwtError
from figma_for_jira.domain.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from figma_for_jira.logging_config import get_logger
from figma_for_jira.services.figma_service import FigmaServiceCredentialsError
from figma_for_jira.services.jira_service import SubmitDesignJiraServiceError
from figma_for_jira.services.webhook_service import InvalidWebhookPasscodeError

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(JwtError)
    async def jwt_error_handler(request: Request, exc: JwtError) -> JSONResponse:
        logger.info(
            "Connect JWT rejected",
            path=str(request.url.path),
            reason=type(exc).__name__,
            error=str(exc),
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": str(exc)},
            headers={"WWW-Authenticate": "JWT"},
        )

    @app.exception_handler(FigmaServiceCredentialsError)
    async def credentials_error_handler(
        request: Request, exc: FigmaServiceCredentialsError
    ) -> JSONResponse:
        logger.info(
            "Figma credentials missing or rejected",
            atlassian_user_id=exc.user.atlassian_user_id,
        )
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": "Figma authorization required"},
        )

    @app.exception_handler(PermissionDeniedError)
    async def permission_error_handler(request: Request, exc: PermissionDeniedError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})

    @app.exception_handler(InvalidWebhookPasscodeError)
    async def passcode_error_handler(
        request: Request, exc: InvalidWebhookPasscodeError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid passcode"}
        )

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(SubmitDesignJiraServiceError)
    async def submit_design_error_handler(
        request: Request, exc: SubmitDesignJiraServiceError
    ) -> JSONResponse:
        logger.warning("Jira rejected design submission", **exc.to_dict())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc), "rejection": exc.to_dict()},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        logger.error("Unhandled exception", exc_info=exc, path=str(request.url.path))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
