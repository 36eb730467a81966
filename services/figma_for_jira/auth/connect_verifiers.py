"""Verification of inbound Atlassian Connect JWTs.

Three schemes, chosen by route:

- ``AsymmetricLifecycleJwtVerifier``: install/uninstall callbacks, RS256 signed
  by Atlassian, public key resolved from the token's ``kid``.
- ``ServerSymmetricJwtVerifier``: ``Authorization: JWT <token>`` on API calls,
  HS256 with the installation's shared secret, qsh bound to the request.
- ``ContextSymmetricJwtVerifier``: ``?jwt=<token>`` context tokens, HS256,
  qsh is the literal ``context-qsh`` and ``sub`` identifies the user.

Each verification is a single call that returns an auth context or raises a
``JwtError`` subclass. Nothing is retried.
"""

import hmac
from dataclasses import dataclass
from datetime import datetime

import httpx
import jwt

from figma_for_jira.auth.connect_jwt import (
    CONNECT_JWT_ALGORITHM,
    CONTEXT_QSH,
    CanonicalRequest,
    ConnectJwtTokenClaims,
    create_query_string_hash,
    decode_unverified_claims,
    parse_claims,
)
from figma_for_jira.db.models import Clock, utc_now
from figma_for_jira.domain.entities import ConnectInstallation
from figma_for_jira.logging_config import get_logger
from figma_for_jira.repositories.protocol import ConnectInstallationRepository

logger = get_logger(__name__)

ASYMMETRIC_ALGORITHM = "RS256"


class JwtError(Exception):
    """Base class for inbound Connect JWT failures."""


class MissingTokenError(JwtError):
    def __init__(self) -> None:
        super().__init__("Missing JWT token")


class InstallationNotFoundError(JwtError):
    def __init__(self, client_key: str) -> None:
        self.client_key = client_key
        super().__init__("Connect installation not found")


class JwtVerificationError(JwtError):
    pass


@dataclass(frozen=True)
class ServerAuthContext:
    connect_installation: ConnectInstallation


@dataclass(frozen=True)
class ContextAuthContext:
    connect_installation: ConnectInstallation
    atlassian_user_id: str


def _decode(
    token: str, key: str, algorithm: str, now: datetime, audience: str | None = None
) -> dict:
    """Verify signature and expiry against an explicit clock."""
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[algorithm],
            audience=audience,
            options={"verify_exp": False, "verify_iat": False, "verify_aud": audience is not None},
        )
    except jwt.InvalidAudienceError as e:
        raise JwtVerificationError("JWT audience mismatch") from e
    except jwt.InvalidTokenError as e:
        raise JwtVerificationError(f"Invalid JWT: {e}") from e

    try:
        claims = parse_claims(payload)
    except ValueError as e:
        raise JwtVerificationError(str(e)) from e
    if claims.exp <= int(now.timestamp()):
        raise JwtVerificationError("JWT expired")
    return payload


def _check_qsh(claims: ConnectJwtTokenClaims, request: CanonicalRequest, base_path: str) -> None:
    expected = create_query_string_hash(request, base_path)
    if not hmac.compare_digest(claims.qsh, expected):
        raise JwtVerificationError("Wrong query string hash")


class SymmetricJwtVerifier:
    """Shared lookup-then-verify logic for shared-secret tokens."""

    def __init__(
        self,
        installations: ConnectInstallationRepository,
        clock: Clock = utc_now,
    ) -> None:
        self._installations = installations
        self._clock = clock

    async def _verify(self, token: str | None) -> tuple[ConnectInstallation, ConnectJwtTokenClaims]:
        if not token:
            raise MissingTokenError()

        try:
            unverified = decode_unverified_claims(token)
        except jwt.InvalidTokenError as e:
            raise JwtVerificationError("Malformed JWT") from e

        client_key = unverified.get("iss")
        if not isinstance(client_key, str) or not client_key:
            raise JwtVerificationError("JWT has no issuer")

        installation = await self._installations.get_by_client_key(client_key)
        if installation is None:
            raise InstallationNotFoundError(client_key)

        payload = _decode(token, installation.shared_secret, CONNECT_JWT_ALGORITHM, self._clock())
        return installation, parse_claims(payload)


class ServerSymmetricJwtVerifier(SymmetricJwtVerifier):
    def __init__(
        self,
        installations: ConnectInstallationRepository,
        base_path: str = "",
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(installations, clock)
        self._base_path = base_path

    async def verify(self, token: str | None, request: CanonicalRequest) -> ServerAuthContext:
        installation, claims = await self._verify(token)
        _check_qsh(claims, request, self._base_path)
        return ServerAuthContext(connect_installation=installation)


class ContextSymmetricJwtVerifier(SymmetricJwtVerifier):
    async def verify(self, token: str | None) -> ContextAuthContext:
        installation, claims = await self._verify(token)
        if claims.qsh != CONTEXT_QSH:
            raise JwtVerificationError("Wrong query string hash")
        if not claims.sub:
            raise JwtVerificationError("Context JWT has no subject")
        return ContextAuthContext(connect_installation=installation, atlassian_user_id=claims.sub)


class AsymmetricLifecycleJwtVerifier:
    """Verifies RS256 tokens Atlassian sends with install lifecycle callbacks.

    Public keys are immutable per ``kid`` so they are cached for the life of
    the process.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        keys_base_url: str,
        audience: str,
        base_path: str = "",
        clock: Clock = utc_now,
    ) -> None:
        self._http = http
        self._keys_base_url = keys_base_url.rstrip("/")
        self._audience = audience
        self._base_path = base_path
        self._clock = clock
        self._keys: dict[str, str] = {}

    async def _get_public_key(self, kid: str) -> str:
        if kid in self._keys:
            return self._keys[kid]
        try:
            resp = await self._http.get(f"{self._keys_base_url}/{kid}")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to fetch Connect public key", kid=kid, error=str(e))
            raise JwtVerificationError("Unable to resolve JWT signing key") from e
        self._keys[kid] = resp.text
        return resp.text

    async def verify(self, token: str | None, request: CanonicalRequest) -> ConnectJwtTokenClaims:
        if not token:
            raise MissingTokenError()

        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise JwtVerificationError("Malformed JWT") from e

        kid = header.get("kid")
        if not kid or "/" in kid:
            raise JwtVerificationError("JWT has no usable key id")
        if header.get("alg") != ASYMMETRIC_ALGORITHM:
            raise JwtVerificationError("Unexpected JWT algorithm")

        public_key = await self._get_public_key(kid)
        payload = _decode(
            token, public_key, ASYMMETRIC_ALGORITHM, self._clock(), audience=self._audience
        )
        claims = parse_claims(payload)
        _check_qsh(claims, request, self._base_path)
        return claims
