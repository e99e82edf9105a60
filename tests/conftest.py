"""
tests.conftest

Shared fixtures: a throwaway IdP signing identity, an AuthConfig that trusts
it, cheap argon2 parameters, in-memory stores, and a signed-assertion builder.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
from argon2 import PasswordHasher
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from lxml import etree
from signxml import XMLSigner

from authgate.auth.config import AuthConfig, load_auth_config
from authgate.auth.models import AuthMethod, FederatedAssertion, StoredIdentityRecord
from authgate.auth.passwords import SecretHasher
from authgate.auth.saml import SAML_ASSERTION_NS, SAML_PROTOCOL_NS, format_instant
from authgate.settings import Settings
from authgate.stores.memory import InMemoryCredentialStore, InMemoryReplayStore

LOCAL_MARKER = "@dbauth.com"
FEDERATED_MARKER = "@oktaauth.com"
IDP_ISSUER = "http://www.okta.com/exk-test"
IDP_SSO_URL = "https://idp.example.test/sso/saml"
AUDIENCE = "urn:authgate:test-sp"
ACS_URL = "http://testserver/v1/auth/federated/acs"

LOCAL_USER = "dbuser@dbauth.com"
LOCAL_SECRET = "oktaiscool"
FEDERATED_USER = "samluser@oktaauth.com"

EXC_C14N = "http://www.w3.org/2001/10/xml-exc-c14n#"


class SigningIdentity:
    def __init__(self, common_name: str) -> None:
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        now = datetime.now(tz=UTC)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(days=1))
            .not_valid_after(now + timedelta(days=30))
            .sign(key, hashes.SHA256())
        )
        self.key_pem = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        self.cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode()


@pytest.fixture(scope="session")
def idp() -> SigningIdentity:
    return SigningIdentity("test-idp")


@pytest.fixture(scope="session")
def rogue_idp() -> SigningIdentity:
    return SigningIdentity("rogue-idp")


def make_settings(idp: SigningIdentity, **overrides) -> Settings:
    values = dict(
        env="test",
        local_domain_marker=LOCAL_MARKER,
        federated_domain_marker=FEDERATED_MARKER,
        idp_issuer=IDP_ISSUER,
        idp_sso_url=IDP_SSO_URL,
        idp_certificate=idp.cert_pem,
        audience_identifier=AUDIENCE,
        acs_url=ACS_URL,
        assertion_clock_skew_seconds=60,
        upstream_timeout_seconds=1.0,
        jwt_secret="test-secret-with-enough-length-for-hs256",
        database_url="sqlite+aiosqlite:///:memory:",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(idp: SigningIdentity) -> Settings:
    return make_settings(idp)


@pytest.fixture
def auth_config(settings: Settings) -> AuthConfig:
    return load_auth_config(settings)


@pytest.fixture(scope="session")
def hasher() -> SecretHasher:
    # Minimum argon2 cost; production uses argon2-cffi defaults.
    return SecretHasher(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def credential_store(hasher: SecretHasher) -> InMemoryCredentialStore:
    return InMemoryCredentialStore(
        [
            StoredIdentityRecord(
                username=LOCAL_USER, secret_hash=hasher.hash(LOCAL_SECRET), method=AuthMethod.local
            ),
            StoredIdentityRecord(username=FEDERATED_USER, method=AuthMethod.federated),
        ]
    )


@pytest.fixture
def replay_store() -> InMemoryReplayStore:
    return InMemoryReplayStore()


class RecordingAuditSink:
    def __init__(self) -> None:
        self.events = []

    async def emit(self, event) -> None:
        self.events.append(event)


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


def build_assertion(
    *,
    subject: str = FEDERATED_USER,
    issuer: str = IDP_ISSUER,
    audience: str | None = AUDIENCE,
    recipient: str | None = ACS_URL,
    assertion_id: str | None = None,
    issued_at: datetime | None = None,
    lifetime: timedelta = timedelta(minutes=5),
) -> etree._Element:
    issued_at = issued_at or datetime.now(tz=UTC)
    expires = issued_at + lifetime
    nsmap = {"saml": SAML_ASSERTION_NS}
    a = etree.Element(f"{{{SAML_ASSERTION_NS}}}Assertion", nsmap=nsmap)
    a.set("ID", assertion_id or f"_{uuid.uuid4().hex}")
    a.set("Version", "2.0")
    a.set("IssueInstant", format_instant(issued_at))
    etree.SubElement(a, f"{{{SAML_ASSERTION_NS}}}Issuer").text = issuer

    subj = etree.SubElement(a, f"{{{SAML_ASSERTION_NS}}}Subject")
    etree.SubElement(subj, f"{{{SAML_ASSERTION_NS}}}NameID").text = subject
    confirmation = etree.SubElement(subj, f"{{{SAML_ASSERTION_NS}}}SubjectConfirmation")
    confirmation.set("Method", "urn:oasis:names:tc:SAML:2.0:cm:bearer")
    data = etree.SubElement(confirmation, f"{{{SAML_ASSERTION_NS}}}SubjectConfirmationData")
    data.set("NotOnOrAfter", format_instant(expires))
    if recipient is not None:
        data.set("Recipient", recipient)

    conditions = etree.SubElement(a, f"{{{SAML_ASSERTION_NS}}}Conditions")
    conditions.set("NotBefore", format_instant(issued_at))
    conditions.set("NotOnOrAfter", format_instant(expires))
    if audience is not None:
        restriction = etree.SubElement(conditions, f"{{{SAML_ASSERTION_NS}}}AudienceRestriction")
        etree.SubElement(restriction, f"{{{SAML_ASSERTION_NS}}}Audience").text = audience
    return a


def sign(element: etree._Element, identity: SigningIdentity) -> etree._Element:
    return XMLSigner(c14n_algorithm=EXC_C14N).sign(
        element, key=identity.key_pem, cert=identity.cert_pem
    )


def wrap_response(assertion: etree._Element) -> bytes:
    response = etree.Element(f"{{{SAML_PROTOCOL_NS}}}Response", nsmap={"samlp": SAML_PROTOCOL_NS})
    response.set("ID", f"_{uuid.uuid4().hex}")
    response.set("Version", "2.0")
    response.set("IssueInstant", format_instant(datetime.now(tz=UTC)))
    response.set("Destination", ACS_URL)
    response.append(assertion)
    return etree.tostring(response)


@pytest.fixture
def signed_assertion(idp: SigningIdentity) -> Callable[..., FederatedAssertion]:
    def _make(relay_state: str | None = None, **kwargs) -> FederatedAssertion:
        document = wrap_response(sign(build_assertion(**kwargs), idp))
        return FederatedAssertion(document=document, relay_state=relay_state)

    return _make


# --- Module Notes -----------------------------------------------------------
# Assertions are signed with exclusive canonicalization, as IdPs do, so wrapping
# the signed Assertion in a Response does not disturb its digest.
