"""
authgate.api.routers.auth

Login endpoints.

Responsibilities:
- Local login (username + password) and the two legs of the federated flow.
- Render every authentication failure as the same 401 body.
- Expose the current identity and this service's SAML metadata.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, HTTPException, Query
from fastapi.responses import RedirectResponse, Response
from pydantic import BaseModel, Field
from starlette.status import HTTP_302_FOUND, HTTP_401_UNAUTHORIZED

from authgate.api.deps import auth_config_from_app, login_service
from authgate.auth.config import AuthConfig
from authgate.auth.deps import get_identity
from authgate.auth.errors import PUBLIC_REJECTION_MESSAGE, AuthFailure
from authgate.auth.models import AuthenticatedIdentity, AuthResult, FederatedAssertion
from authgate.auth.saml import build_sp_metadata
from authgate.services.login_service import LoginService

router = APIRouter(prefix="/v1/auth", tags=["auth"])


class LocalLoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=1024, repr=False)


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    method: str


class IdentityResponse(BaseModel):
    username: str
    method: str
    authorities: list[str]


def _rejected() -> HTTPException:
    # One message for every failure kind; the kind is in the audit trail only.
    return HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=PUBLIC_REJECTION_MESSAGE)


def _session_response(svc: LoginService, result: AuthResult) -> SessionResponse:
    if isinstance(result, AuthFailure):
        raise _rejected()
    return SessionResponse(
        access_token=svc.issue_session_token(result),
        username=result.username,
        method=result.method.value,
    )


@router.post("/local", response_model=SessionResponse)
async def login_local(
    body: LocalLoginRequest,
    svc: LoginService = Depends(login_service),
) -> SessionResponse:
    result = await svc.login_local(body.username, body.password)
    return _session_response(svc, result)


@router.get("/federated/begin")
async def begin_federated(
    username: str = Query(min_length=1, max_length=320),
    svc: LoginService = Depends(login_service),
) -> RedirectResponse:
    instruction = svc.begin_federated(username)
    if isinstance(instruction, AuthFailure):
        raise _rejected()
    return RedirectResponse(instruction.url, status_code=HTTP_302_FOUND)


@router.post("/federated/acs", response_model=SessionResponse)
async def assertion_consumer(
    saml_response: str = Form(alias="SAMLResponse"),
    relay_state: str | None = Form(default=None, alias="RelayState"),
    svc: LoginService = Depends(login_service),
) -> SessionResponse:
    assertion = FederatedAssertion.from_post_binding(saml_response, relay_state)
    result = await svc.login_federated(assertion)
    return _session_response(svc, result)


@router.get("/me", response_model=IdentityResponse)
async def me(identity: AuthenticatedIdentity = Depends(get_identity)) -> IdentityResponse:
    return IdentityResponse(
        username=identity.username,
        method=identity.method.value,
        authorities=sorted(identity.authorities),
    )


@router.get("/metadata")
async def sp_metadata(config: AuthConfig = Depends(auth_config_from_app)) -> Response:
    document = build_sp_metadata(entity_id=config.audience_identifier, acs_url=config.acs_url)
    return Response(content=document, media_type="application/samlmetadata+xml")


# --- Module Notes -----------------------------------------------------------
# The ACS is a browser form post from the IdP; a front-end would normally turn
# the returned token into a cookie. Cookie/session handling is left to callers.
