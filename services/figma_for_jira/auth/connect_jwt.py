"""Atlassian Connect JWT primitives.

Query string hash (qsh) canonicalization, claim validation, and the
short-lived HS256 tokens the app signs for its own calls into Jira.

Canonical request: ``METHOD&path&query`` where
- path is relative to the app's base path, "/" when empty, no trailing slash,
  and "&" is escaped as "%26";
- query excludes the ``jwt`` parameter, is sorted by encoded key, and repeated
  values are sorted then joined with ",". Keys and values are percent-encoded
  per RFC 3986.
"""

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import parse_qsl, quote, urlsplit

import jwt
from pydantic import BaseModel, ValidationError

from figma_for_jira.domain.entities import ConnectInstallation

CONTEXT_QSH = "context-qsh"
CONNECT_JWT_ALGORITHM = "HS256"
JWT_QUERY_PARAMETER = "jwt"


class ConnectJwtTokenClaims(BaseModel):
    """Decoded Connect JWT payload."""

    iss: str
    iat: int
    exp: int
    qsh: str
    sub: str | None = None
    aud: str | list[str] | None = None


@dataclass(frozen=True)
class CanonicalRequest:
    """The parts of an HTTP request covered by the qsh claim."""

    method: str
    pathname: str
    query: Mapping[str, Sequence[str]]

    @classmethod
    def from_url(cls, method: str, url: str) -> "CanonicalRequest":
        parts = urlsplit(url)
        query: dict[str, list[str]] = {}
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            query.setdefault(key, []).append(value)
        return cls(method=method, pathname=parts.path, query=query)


def _encode(value: str) -> str:
    # RFC 3986 unreserved characters stay as-is; quote() already leaves "~" alone.
    return quote(value, safe="")


def canonical_path(pathname: str, base_path: str = "") -> str:
    path = pathname
    base = base_path.rstrip("/")
    if base and (path == base or path.startswith(base + "/")):
        path = path[len(base) :]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path.replace("&", "%26")


def canonical_query(query: Mapping[str, Sequence[str]]) -> str:
    encoded: dict[str, list[str]] = {}
    for key, values in query.items():
        if key == JWT_QUERY_PARAMETER:
            continue
        encoded.setdefault(_encode(key), []).extend(_encode(v) for v in values)
    return "&".join(
        f"{key}={','.join(sorted(values))}" for key, values in sorted(encoded.items())
    )


def create_canonical_request(request: CanonicalRequest, base_path: str = "") -> str:
    return "&".join(
        [
            request.method.upper(),
            canonical_path(request.pathname, base_path),
            canonical_query(request.query),
        ]
    )


def create_query_string_hash(request: CanonicalRequest, base_path: str = "") -> str:
    canonical = create_canonical_request(request, base_path)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def decode_unverified_claims(token: str) -> dict:
    """Read claims without checking the signature, to find the tenant."""
    return jwt.decode(token, options={"verify_signature": False})


def parse_claims(payload: dict) -> ConnectJwtTokenClaims:
    """Validate the claim shape. Raises ``ValueError`` on malformed claims."""
    try:
        return ConnectJwtTokenClaims.model_validate(payload)
    except ValidationError as e:
        raise ValueError(f"Malformed Connect JWT claims: {e.error_count()} error(s)") from e


def create_connect_jwt_token(
    installation: ConnectInstallation,
    method: str,
    url: str,
    now: datetime,
    expires_in_seconds: int = 180,
) -> str:
    """Sign a token for an outbound call to the installation's Jira site.

    The path is taken relative to the site's base URL so that sites hosted
    under a context path hash the same request Jira sees.
    """
    base_path = urlsplit(installation.base_url).path
    iat = int(now.timestamp())
    claims = {
        "iss": installation.key,
        "iat": iat,
        "exp": iat + expires_in_seconds,
        "qsh": create_query_string_hash(CanonicalRequest.from_url(method, url), base_path),
    }
    return jwt.encode(claims, installation.shared_secret, algorithm=CONNECT_JWT_ALGORITHM)
