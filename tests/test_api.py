"""
tests.test_api

End-to-end tests through the FastAPI app with a file-backed SQLite database.

Responsibilities:
- Ensure the app starts and the health/readiness probes work in test mode.
- Drive local and federated logins over HTTP and use the issued session token.
- Check that every rejection renders the same generic 401 body.
"""

from __future__ import annotations

import base64
from collections.abc import AsyncIterator
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from authgate.api.app import create_app
from authgate.auth.errors import ConfigError, FailureKind
from authgate.auth.models import AuthMethod
from authgate.db.repositories.audit import AuditRepo
from authgate.db.repositories.identities import IdentityRepo

from .conftest import (
    ACS_URL,
    FEDERATED_USER,
    IDP_SSO_URL,
    LOCAL_SECRET,
    LOCAL_USER,
    make_settings,
)

REJECTED = {"detail": "Authentication failed"}


@pytest_asyncio.fixture
async def app(idp, hasher, tmp_path) -> AsyncIterator[FastAPI]:
    settings = make_settings(idp, database_url=f"sqlite+aiosqlite:///{tmp_path / 'authgate.db'}")
    app = create_app(settings=settings, hasher=hasher)

    # httpx ASGITransport does not run lifespan events; drive them explicitly.
    async with app.router.lifespan_context(app):
        async with app.state.sessionmaker() as session:
            repo = IdentityRepo(session)
            await repo.create(
                username=LOCAL_USER, method=AuthMethod.local, secret_hash=hasher.hash(LOCAL_SECRET)
            )
            await repo.create(username=FEDERATED_USER, method=AuthMethod.federated)
            await session.commit()
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


def _post_binding(assertion) -> str:
    return base64.b64encode(assertion.document).decode()


@pytest.mark.asyncio
async def test_health_endpoints(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.headers["x-request-id"]

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_local_login_issues_usable_session(client: httpx.AsyncClient) -> None:
    r = await client.post("/v1/auth/local", json={"username": LOCAL_USER, "password": LOCAL_SECRET})
    assert r.status_code == 200
    body = r.json()
    assert body["username"] == LOCAL_USER
    assert body["method"] == "LOCAL"
    assert body["token_type"] == "bearer"

    r = await client.get(
        "/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"}
    )
    assert r.status_code == 200
    assert r.json() == {"username": LOCAL_USER, "method": "LOCAL", "authorities": []}


@pytest.mark.parametrize(
    ("username", "password"),
    [
        (LOCAL_USER, "wrong"),
        ("ghost@dbauth.com", LOCAL_SECRET),
        (FEDERATED_USER, LOCAL_SECRET),
        ("nobody@unknown.com", LOCAL_SECRET),
    ],
)
@pytest.mark.asyncio
async def test_every_local_rejection_looks_the_same(
    client: httpx.AsyncClient, username: str, password: str
) -> None:
    r = await client.post("/v1/auth/local", json={"username": username, "password": password})
    assert r.status_code == 401
    assert r.json() == REJECTED


@pytest.mark.asyncio
async def test_failed_login_is_audited_with_kind(app: FastAPI, client: httpx.AsyncClient) -> None:
    await client.post("/v1/auth/local", json={"username": LOCAL_USER, "password": "wrong"})

    async with app.state.sessionmaker() as session:
        events = await AuditRepo(session).list_for_username(LOCAL_USER)
    assert [(e.outcome, e.failure_kind) for e in events] == [("FAILURE", FailureKind.bad_credentials)]


@pytest.mark.asyncio
async def test_federated_begin_redirects_to_idp(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/auth/federated/begin", params={"username": FEDERATED_USER})

    assert r.status_code == 302
    location = urlsplit(r.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == IDP_SSO_URL
    query = parse_qs(location.query)
    assert query["RelayState"] == [FEDERATED_USER]
    assert query["SAMLRequest"]


@pytest.mark.parametrize("username", [LOCAL_USER, "nobody@unknown.com"])
@pytest.mark.asyncio
async def test_federated_begin_refuses_other_usernames(
    client: httpx.AsyncClient, username: str
) -> None:
    r = await client.get("/v1/auth/federated/begin", params={"username": username})
    assert r.status_code == 401
    assert r.json() == REJECTED


@pytest.mark.asyncio
async def test_acs_accepts_signed_assertion_once(client: httpx.AsyncClient, signed_assertion) -> None:
    form = {"SAMLResponse": _post_binding(signed_assertion()), "RelayState": FEDERATED_USER}

    r = await client.post("/v1/auth/federated/acs", data=form)
    assert r.status_code == 200
    body = r.json()
    assert (body["username"], body["method"]) == (FEDERATED_USER, "FEDERATED")

    r = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert r.json()["method"] == "FEDERATED"

    # Same assertion again: replay.
    r = await client.post("/v1/auth/federated/acs", data=form)
    assert r.status_code == 401
    assert r.json() == REJECTED


@pytest.mark.asyncio
async def test_acs_supports_idp_initiated_login(client: httpx.AsyncClient, signed_assertion) -> None:
    r = await client.post(
        "/v1/auth/federated/acs", data={"SAMLResponse": _post_binding(signed_assertion())}
    )
    assert r.status_code == 200
    assert r.json()["username"] == FEDERATED_USER


@pytest.mark.asyncio
async def test_acs_rejects_assertion_for_another_user(
    client: httpx.AsyncClient, signed_assertion
) -> None:
    form = {"SAMLResponse": _post_binding(signed_assertion()), "RelayState": "someone@oktaauth.com"}
    r = await client.post("/v1/auth/federated/acs", data=form)
    assert r.status_code == 401
    assert r.json() == REJECTED


@pytest.mark.asyncio
async def test_acs_rejects_garbage(client: httpx.AsyncClient) -> None:
    r = await client.post("/v1/auth/federated/acs", data={"SAMLResponse": "%%%not-base64%%%"})
    assert r.status_code == 401
    assert r.json() == REJECTED


@pytest.mark.asyncio
async def test_me_requires_valid_token(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/auth/me")
    assert r.status_code == 401

    r = await client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json() == REJECTED


@pytest.mark.asyncio
async def test_sp_metadata_names_acs(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/auth/metadata")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/samlmetadata+xml")
    assert ACS_URL.encode() in r.content


def test_overlapping_markers_prevent_app_construction(idp) -> None:
    settings = make_settings(idp, local_domain_marker="@auth.com", federated_domain_marker="auth.com")
    with pytest.raises(ConfigError):
        create_app(settings=settings)


@pytest.mark.asyncio
async def test_missing_idp_material_fails_startup(idp) -> None:
    app = create_app(settings=make_settings(idp, idp_certificate=None, idp_metadata_endpoint=None))
    with pytest.raises(ConfigError):
        async with app.router.lifespan_context(app):
            pass


# --- Module Notes -----------------------------------------------------------
# A file-backed database (tmp_path) is used because each aiosqlite connection to
# ":memory:" would otherwise see its own empty database.
