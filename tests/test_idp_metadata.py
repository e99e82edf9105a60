"""
tests.test_idp_metadata

IdP metadata parsing and discovery over HTTP.
"""

from __future__ import annotations

import httpx
import pytest

from authgate.auth.errors import ConfigError
from authgate.idp.metadata import fetch_idp_metadata, parse_idp_metadata

METADATA_URL = "https://idp.example.test/app/metadata"


def _metadata(cert_body: str) -> bytes:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<md:EntityDescriptor xmlns:md="urn:oasis:names:tc:SAML:2.0:metadata"
                     entityID="http://www.okta.com/exk-test">
  <md:IDPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol">
    <md:KeyDescriptor use="encryption">
      <ds:KeyInfo xmlns:ds="http://www.w3.org/2000/09/xmldsig#">
        <ds:X509Data><ds:X509Certificate>ENCRYPTIONCERT</ds:X509Certificate></ds:X509Data>
      </ds:KeyInfo>
    </md:KeyDescriptor>
    <md:KeyDescriptor use="signing">
      <ds:KeyInfo xmlns:ds="http://www.w3.org/2000/09/xmldsig#">
        <ds:X509Data><ds:X509Certificate>{cert_body}</ds:X509Certificate></ds:X509Data>
      </ds:KeyInfo>
    </md:KeyDescriptor>
    <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
                            Location="https://idp.example.test/sso/post"/>
    <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
                            Location="https://idp.example.test/sso/redirect"/>
  </md:IDPSSODescriptor>
</md:EntityDescriptor>
""".encode()


def test_parse_picks_signing_cert_and_redirect_location() -> None:
    metadata = parse_idp_metadata(_metadata("SIGNINGCERT"))

    assert metadata.entity_id == "http://www.okta.com/exk-test"
    assert metadata.sso_url == "https://idp.example.test/sso/redirect"
    assert metadata.certificate == "SIGNINGCERT"


@pytest.mark.parametrize("document", [b"not xml", b"<md:EntityDescriptor xmlns:md='urn:oasis:names:tc:SAML:2.0:metadata'/>"])
def test_unusable_metadata_is_config_error(document: bytes) -> None:
    with pytest.raises(ConfigError):
        parse_idp_metadata(document)


@pytest.mark.asyncio
async def test_fetch_reads_metadata_from_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == METADATA_URL
        return httpx.Response(200, content=_metadata("SIGNINGCERT"))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        metadata = await fetch_idp_metadata(METADATA_URL, timeout=1.0, http=http)

    assert metadata.sso_url == "https://idp.example.test/sso/redirect"


@pytest.mark.asyncio
async def test_fetch_timeout_is_config_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow idp", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        with pytest.raises(ConfigError, match="timed out"):
            await fetch_idp_metadata(METADATA_URL, timeout=0.5, http=http)


@pytest.mark.asyncio
async def test_fetch_http_error_is_config_error() -> None:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(503))
    ) as http:
        with pytest.raises(ConfigError):
            await fetch_idp_metadata(METADATA_URL, timeout=1.0, http=http)
