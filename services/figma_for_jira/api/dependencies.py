"""FastAPI dependencies for Connect JWT authentication.

Each route picks the scheme it needs:
- ``require_lifecycle_jwt``: install/uninstall callbacks (asymmetric)
- ``require_server_jwt``: ``Authorization: JWT <token>`` (symmetric, qsh-bound)
- ``require_context_jwt``: ``?jwt=<token>`` (symmetric, context qsh)

Failures raise ``JwtError`` subclasses; ``figma_for_jira.api.errors`` turns
them into 401 responses.
"""

from fastapi import Depends, Header, Query, Request

from figma_for_jira.api.container import Container
from figma_for_jira.auth.connect_jwt import CanonicalRequest, ConnectJwtTokenClaims
from figma_for_jira.auth.connect_verifiers import ContextAuthContext, ServerAuthContext

AUTHORIZATION_SCHEME = "JWT"


def get_container(request: Request) -> Container:
    return request.app.state.container


def canonical_request(request: Request) -> CanonicalRequest:
    query: dict[str, list[str]] = {}
    for key, value in request.query_params.multi_items():
        query.setdefault(key, []).append(value)
    return CanonicalRequest(method=request.method, pathname=request.url.path, query=query)


def _token_from_authorization(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme != AUTHORIZATION_SCHEME:
        return None
    return token.strip() or None


async def require_lifecycle_jwt(
    request: Request,
    authorization: str | None = Header(default=None),
    container: Container = Depends(get_container),
) -> ConnectJwtTokenClaims:
    return await container.lifecycle_verifier.verify(
        _token_from_authorization(authorization), canonical_request(request)
    )


async def require_server_jwt(
    request: Request,
    authorization: str | None = Header(default=None),
    container: Container = Depends(get_container),
) -> ServerAuthContext:
    return await container.server_verifier.verify(
        _token_from_authorization(authorization), canonical_request(request)
    )


async def require_context_jwt(
    jwt: str | None = Query(default=None),
    container: Container = Depends(get_container),
) -> ContextAuthContext:
    return await container.context_verifier.verify(jwt)
