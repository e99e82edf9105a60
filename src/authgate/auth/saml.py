"""
authgate.auth.saml

SAML 2.0 building blocks for the single exchange this service supports.

Responsibilities:
- Parse IdP documents with a hardened lxml parser.
- Verify the XML signature on an Assertion (signxml) and read only the
  signed content.
- Build the HTTP-Redirect AuthnRequest and the SP metadata document.
"""

from __future__ import annotations

import base64
import uuid
import zlib
from dataclasses import dataclass
from datetime import UTC, datetime

from lxml import etree
from signxml import XMLVerifier
from signxml.exceptions import SignXMLException

SAML_ASSERTION_NS = "urn:oasis:names:tc:SAML:2.0:assertion"
SAML_PROTOCOL_NS = "urn:oasis:names:tc:SAML:2.0:protocol"
SAML_METADATA_NS = "urn:oasis:names:tc:SAML:2.0:metadata"
XMLDSIG_NS = "http://www.w3.org/2000/09/xmldsig#"

BINDING_HTTP_POST = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
BINDING_HTTP_REDIRECT = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
NAMEID_FORMAT_EMAIL = "urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress"

_NS = {"saml": SAML_ASSERTION_NS, "samlp": SAML_PROTOCOL_NS, "md": SAML_METADATA_NS, "ds": XMLDSIG_NS}

# No DTDs, no entity expansion, no network access while parsing untrusted input.
_PARSER = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    load_dtd=False,
    huge_tree=False,
)


class SamlError(Exception):
    """The document is malformed, unsigned, or its signature does not verify."""


@dataclass(frozen=True, slots=True)
class ParsedAssertion:
    assertion_id: str
    issuer: str | None
    subject: str | None
    issue_instant: datetime
    not_before: datetime | None
    not_on_or_after: datetime
    audiences: tuple[str, ...]
    recipients: tuple[str, ...]


def parse_document(data: bytes) -> etree._Element:
    if not data:
        raise SamlError("empty document")
    try:
        return etree.fromstring(data, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise SamlError("document is not well-formed XML") from e


def find_assertion(document: etree._Element) -> etree._Element:
    if document.tag == f"{{{SAML_ASSERTION_NS}}}Assertion":
        return document
    assertions = document.findall(".//saml:Assertion", namespaces=_NS)
    if len(assertions) != 1:
        raise SamlError(f"expected exactly one Assertion, found {len(assertions)}")
    return assertions[0]


def verify_assertion_signature(document: etree._Element, certificate: str) -> etree._Element:
    """
    Return the signed Assertion element, or raise SamlError.

    The Assertion is verified as a standalone document so a signature on the
    outer Response cannot vouch for an unsigned inner Assertion.
    """

    assertion = find_assertion(document)
    if assertion.find("ds:Signature", namespaces=_NS) is None:
        raise SamlError("assertion is not signed")
    standalone = etree.fromstring(etree.tostring(assertion), parser=_PARSER)
    try:
        result = XMLVerifier().verify(standalone, x509_cert=certificate, expect_references=1)
    except (SignXMLException, etree.LxmlError, TypeError, ValueError) as e:
        # Forged or garbled signatures surface from both signxml and lxml.
        raise SamlError("assertion signature did not verify") from e
    signed = result.signed_xml
    if signed is None or signed.tag != f"{{{SAML_ASSERTION_NS}}}Assertion":
        raise SamlError("signature does not cover the assertion")
    return signed


def read_assertion(signed: etree._Element) -> ParsedAssertion:
    assertion_id = signed.get("ID")
    if not assertion_id:
        raise SamlError("assertion has no ID")
    issue_instant = parse_instant(signed.get("IssueInstant"))
    if issue_instant is None:
        raise SamlError("assertion has no IssueInstant")

    conditions = signed.find("saml:Conditions", namespaces=_NS)
    not_before = parse_instant(conditions.get("NotBefore")) if conditions is not None else None
    not_on_or_after = (
        parse_instant(conditions.get("NotOnOrAfter")) if conditions is not None else None
    )

    confirmations = signed.findall(
        "saml:Subject/saml:SubjectConfirmation/saml:SubjectConfirmationData", namespaces=_NS
    )
    recipients = tuple(node.get("Recipient") for node in confirmations if node.get("Recipient"))
    if not_on_or_after is None:
        # Fall back to the bearer confirmation window when Conditions has none.
        windows = [parse_instant(node.get("NotOnOrAfter")) for node in confirmations]
        windows = [w for w in windows if w is not None]
        not_on_or_after = min(windows) if windows else None
    if not_on_or_after is None:
        raise SamlError("assertion has no NotOnOrAfter")

    audiences = tuple(
        (node.text or "").strip()
        for node in signed.findall(
            "saml:Conditions/saml:AudienceRestriction/saml:Audience", namespaces=_NS
        )
        if (node.text or "").strip()
    )
    issuer = signed.findtext("saml:Issuer", namespaces=_NS)
    subject = signed.findtext("saml:Subject/saml:NameID", namespaces=_NS)

    return ParsedAssertion(
        assertion_id=assertion_id,
        issuer=issuer.strip() if issuer else None,
        subject=subject.strip() if subject else None,
        issue_instant=issue_instant,
        not_before=not_before,
        not_on_or_after=not_on_or_after,
        audiences=audiences,
        recipients=recipients,
    )


def parse_instant(value: str | None) -> datetime | None:
    if not value or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        instant = datetime.fromisoformat(text)
    except ValueError as e:
        raise SamlError("malformed timestamp") from e
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def format_instant(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def new_request_id() -> str:
    # xs:ID values must not start with a digit.
    return f"_{uuid.uuid4().hex}"


def build_authn_request(
    *,
    request_id: str,
    issue_instant: datetime,
    destination: str,
    acs_url: str,
    sp_entity_id: str,
) -> bytes:
    root = etree.Element(
        f"{{{SAML_PROTOCOL_NS}}}AuthnRequest",
        nsmap={"samlp": SAML_PROTOCOL_NS, "saml": SAML_ASSERTION_NS},
    )
    root.set("ID", request_id)
    root.set("Version", "2.0")
    root.set("IssueInstant", format_instant(issue_instant))
    root.set("Destination", destination)
    root.set("AssertionConsumerServiceURL", acs_url)
    root.set("ProtocolBinding", BINDING_HTTP_POST)
    issuer = etree.SubElement(root, f"{{{SAML_ASSERTION_NS}}}Issuer")
    issuer.text = sp_entity_id
    policy = etree.SubElement(root, f"{{{SAML_PROTOCOL_NS}}}NameIDPolicy")
    policy.set("Format", NAMEID_FORMAT_EMAIL)
    policy.set("AllowCreate", "false")
    return etree.tostring(root)


def encode_redirect(message: bytes) -> str:
    # HTTP-Redirect binding: raw DEFLATE (no zlib header/trailer), then base64.
    compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -15)
    deflated = compressor.compress(message) + compressor.flush()
    return base64.b64encode(deflated).decode("ascii")


def decode_redirect(value: str) -> bytes:
    return zlib.decompress(base64.b64decode(value), -15)


def build_sp_metadata(*, entity_id: str, acs_url: str) -> bytes:
    root = etree.Element(f"{{{SAML_METADATA_NS}}}EntityDescriptor", nsmap={"md": SAML_METADATA_NS})
    root.set("entityID", entity_id)
    descriptor = etree.SubElement(root, f"{{{SAML_METADATA_NS}}}SPSSODescriptor")
    descriptor.set("AuthnRequestsSigned", "false")
    descriptor.set("WantAssertionsSigned", "true")
    descriptor.set("protocolSupportEnumeration", SAML_PROTOCOL_NS)
    name_id = etree.SubElement(descriptor, f"{{{SAML_METADATA_NS}}}NameIDFormat")
    name_id.text = NAMEID_FORMAT_EMAIL
    acs = etree.SubElement(descriptor, f"{{{SAML_METADATA_NS}}}AssertionConsumerService")
    acs.set("index", "0")
    acs.set("isDefault", "true")
    acs.set("Binding", BINDING_HTTP_POST)
    acs.set("Location", acs_url)
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8")


# --- Module Notes -----------------------------------------------------------
# Encryption, artifact resolution, logout and signed AuthnRequests are out of
# scope; only Redirect (request) and POST (response) bindings are handled.
