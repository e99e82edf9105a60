"""
authgate.idp.metadata

SAML metadata discovery for the configured identity provider.

Responsibilities:
- Fetch the IdP metadata document over HTTP (httpx) within the upstream timeout.
- Extract entityID, the HTTP-Redirect SSO location and the signing certificate.
- Report any failure as `ConfigError`, since it happens before the service starts.
"""

from __future__ import annotations

import httpx

from authgate.auth.config import IdpMetadata
from authgate.auth.errors import ConfigError
from authgate.auth.saml import BINDING_HTTP_REDIRECT, SamlError, parse_document
from authgate.observability.logging import get_logger

log = get_logger(__name__)

_NS = {
    "md": "urn:oasis:names:tc:SAML:2.0:metadata",
    "ds": "http://www.w3.org/2000/09/xmldsig#",
}


def parse_idp_metadata(document: bytes) -> IdpMetadata:
    try:
        root = parse_document(document)
    except SamlError as e:
        raise ConfigError("IdP metadata is not well-formed XML") from e

    descriptor = root.find(".//md:IDPSSODescriptor", namespaces=_NS)
    if descriptor is None:
        raise ConfigError("IdP metadata has no IDPSSODescriptor")

    sso_url = None
    for service in descriptor.findall("md:SingleSignOnService", namespaces=_NS):
        if service.get("Binding") == BINDING_HTTP_REDIRECT:
            sso_url = service.get("Location")
            break

    certificate = None
    for key in descriptor.findall("md:KeyDescriptor", namespaces=_NS):
        # A KeyDescriptor without `use` applies to both signing and encryption.
        if key.get("use") in (None, "signing"):
            text = key.findtext(".//ds:X509Certificate", namespaces=_NS)
            if text and text.strip():
                certificate = text.strip()
                break

    entity_id = root.get("entityID")
    if entity_id is None:
        entity = root.find(".//md:EntityDescriptor", namespaces=_NS)
        entity_id = entity.get("entityID") if entity is not None else None

    return IdpMetadata(entity_id=entity_id, sso_url=sso_url, certificate=certificate)


async def fetch_idp_metadata(
    url: str, *, timeout: float, http: httpx.AsyncClient | None = None
) -> IdpMetadata:
    try:
        if http is not None:
            r = await http.get(url, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                r = await client.get(url)
        r.raise_for_status()
    except httpx.TimeoutException as e:
        raise ConfigError(f"IdP metadata endpoint timed out after {timeout:g}s") from e
    except httpx.HTTPError as e:
        raise ConfigError(f"IdP metadata could not be fetched: {e}") from e

    metadata = parse_idp_metadata(r.content)
    log.info("idp_metadata_loaded", url=url, entity_id=metadata.entity_id)
    return metadata


# --- Module Notes -----------------------------------------------------------
# Metadata is read once at startup; rotating the IdP certificate requires a
# restart (or an explicit AUTHGATE_IDP_CERTIFICATE override).
