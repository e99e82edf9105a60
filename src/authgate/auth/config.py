"""
authgate.auth.config

Immutable authentication configuration.

Responsibilities:
- Convert raw `Settings` into a frozen `AuthConfig` exactly once at startup.
- Validate dispatch markers (non-empty, disjoint) and IdP material.
- Raise `ConfigError` for anything that would otherwise surface mid-request.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from datetime import timedelta

from cryptography import x509

from authgate.auth.errors import ConfigError
from authgate.settings import Settings

_PEM_HEADER = "-----BEGIN CERTIFICATE-----"
_PEM_FOOTER = "-----END CERTIFICATE-----"


@dataclass(frozen=True, slots=True)
class DomainMarkers:
    # Stored lower-cased; classification compares case-insensitively.
    local: str
    federated: str


@dataclass(frozen=True, slots=True)
class IdpMetadata:
    entity_id: str | None
    sso_url: str | None
    certificate: str | None


@dataclass(frozen=True, slots=True)
class AuthConfig:
    markers: DomainMarkers
    idp_issuer: str
    idp_sso_url: str
    idp_certificate: str
    audience_identifier: str
    acs_url: str
    clock_skew: timedelta
    upstream_timeout: float
    idp_metadata_endpoint: str | None = None


def build_markers(local: str, federated: str) -> DomainMarkers:
    local_key = (local or "").strip().lower()
    federated_key = (federated or "").strip().lower()
    if not local_key or not federated_key:
        raise ConfigError("domain markers must be non-empty")
    if local_key == federated_key:
        raise ConfigError("local and federated domain markers are identical")
    # A marker that is a suffix of the other would classify some usernames twice.
    if local_key.endswith(federated_key) or federated_key.endswith(local_key):
        raise ConfigError("local and federated domain markers overlap")
    return DomainMarkers(local=local_key, federated=federated_key)


def normalize_certificate(material: str) -> str:
    """
    Return a PEM certificate for `material`, which may be PEM or the bare
    base64 body found in SAML metadata `X509Certificate` elements.
    """

    text = material.strip()
    if _PEM_HEADER not in text:
        body = "".join(text.split())
        text = f"{_PEM_HEADER}\n" + "\n".join(textwrap.wrap(body, 64)) + f"\n{_PEM_FOOTER}"
    try:
        x509.load_pem_x509_certificate(text.encode())
    except ValueError as e:
        raise ConfigError("IdP certificate is not a valid X.509 certificate") from e
    return text + "\n"


def load_auth_config(settings: Settings, *, metadata: IdpMetadata | None = None) -> AuthConfig:
    markers = build_markers(settings.local_domain_marker, settings.federated_domain_marker)

    # Explicit settings win over values discovered from IdP metadata.
    certificate = settings.idp_certificate or (metadata.certificate if metadata else None)
    sso_url = settings.idp_sso_url or (metadata.sso_url if metadata else None)
    issuer = settings.idp_issuer or (metadata.entity_id if metadata else None)
    if not certificate:
        raise ConfigError("no IdP signing certificate configured or discovered")
    if not sso_url:
        raise ConfigError("no IdP single sign-on URL configured or discovered")
    if not issuer:
        raise ConfigError("no IdP issuer configured or discovered")
    if not settings.audience_identifier.strip():
        raise ConfigError("audience identifier must be non-empty")
    if settings.assertion_clock_skew_seconds < 0:
        raise ConfigError("assertion clock skew must not be negative")
    if settings.upstream_timeout_seconds <= 0:
        raise ConfigError("upstream timeout must be positive")

    return AuthConfig(
        markers=markers,
        idp_issuer=issuer,
        idp_sso_url=sso_url,
        idp_certificate=normalize_certificate(certificate),
        audience_identifier=settings.audience_identifier,
        acs_url=settings.acs_url,
        clock_skew=timedelta(seconds=settings.assertion_clock_skew_seconds),
        upstream_timeout=settings.upstream_timeout_seconds,
        idp_metadata_endpoint=settings.idp_metadata_endpoint,
    )


# --- Module Notes -----------------------------------------------------------
# `AuthConfig` is passed explicitly to the coordinator and both verifiers; no
# component reads settings or environment variables on its own.
