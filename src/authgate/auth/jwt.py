"""
authgate.auth.jwt

Session tokens handed out after a successful login.

Responsibilities:
- Encode an `AuthenticatedIdentity` (username, method tag, authorities) as an
  HS256 JWT with a bounded lifetime.
- Decode a presented token, enforcing signature, issuer, audience and the
  registered claims this service always sets.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from authgate.auth.models import AuthenticatedIdentity
from authgate.settings import Settings

_REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub", "method"]


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str
    leeway: timedelta = timedelta(seconds=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    identity: AuthenticatedIdentity,
    ttl: timedelta = timedelta(hours=1),
) -> str:
    issued = datetime.now(tz=UTC)
    claims: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": identity.username,
        "method": identity.method.value,
        "authorities": sorted(identity.authorities),
        "jti": uuid.uuid4().hex,
        "iat": int(issued.timestamp()),
        "exp": int((issued + ttl).timestamp()),
    }
    return jwt.encode(claims, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    """Return the verified claims, or raise JwtValidationError."""

    try:
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            leeway=cfg.leeway,
            options={"require": _REQUIRED_CLAIMS},
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Tokens carry the method tag so downstream services can tell LOCAL from
# FEDERATED sessions without calling back into this service.
