"""
authgate.auth.deps

FastAPI dependency functions for authenticated requests.

Responsibilities:
- Convert a bearer session token into an `AuthenticatedIdentity`.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED

from authgate.auth.errors import PUBLIC_REJECTION_MESSAGE
from authgate.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from authgate.auth.models import AuthenticatedIdentity
from authgate.auth.normalizer import identity_from_claims
from authgate.settings import Settings, get_settings

_bearer = HTTPBearer(auto_error=False)


def _settings(request: Request) -> Settings:
    # Prefer the settings the app was built with; fall back to the environment.
    return getattr(request.app.state, "settings", None) or get_settings()


def get_identity(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(_settings),
) -> AuthenticatedIdentity:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        payload = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=creds.credentials)
        return identity_from_claims(payload)
    except (JwtValidationError, ValueError) as e:
        # Same body as a failed login; the reason is not disclosed.
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=PUBLIC_REJECTION_MESSAGE) from e


# --- Module Notes -----------------------------------------------------------
# Authorization beyond the method tag is not modelled; identities carry an
# empty authority set.
