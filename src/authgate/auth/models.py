"""
authgate.auth.models

Auth domain models.

Responsibilities:
- Define the dispatch classification and authentication method tags.
- Define the canonical `AuthenticatedIdentity` consumed by the rest of the app.
- Define the transient inputs to verification (stored records, assertions)
  and the redirect instruction produced when a federated login starts.
"""

from __future__ import annotations

import base64
import binascii
import enum
from dataclasses import dataclass, field
from typing import TypeAlias
from urllib.parse import urlencode

from authgate.auth.errors import AuthFailure


class AuthMethod(enum.StrEnum):
    local = "LOCAL"
    federated = "FEDERATED"


class Classification(enum.StrEnum):
    local = "LOCAL"
    federated = "FEDERATED"
    invalid = "INVALID"


@dataclass(frozen=True, slots=True)
class StoredIdentityRecord:
    """
    Read-only view of a credential store entry.

    `secret_hash` is an encoded argon2 hash; federated-only accounts may have none.
    """

    username: str
    secret_hash: str | None = field(default=None, repr=False)
    method: AuthMethod | None = None


@dataclass(frozen=True, slots=True)
class AuthenticatedIdentity:
    """
    Authenticated caller identity.

    Downstream code branches on `method`, never on type. `authorities` is always
    empty: per-user permissions are not modelled here.
    """

    username: str
    method: AuthMethod
    authorities: frozenset[str] = frozenset()


AuthResult: TypeAlias = AuthenticatedIdentity | AuthFailure


@dataclass(frozen=True, slots=True)
class FederatedAssertion:
    """SAML document delivered by the IdP callback (decoded XML bytes)."""

    document: bytes = field(repr=False)
    relay_state: str | None = None

    @classmethod
    def from_post_binding(
        cls, saml_response: str, relay_state: str | None = None
    ) -> FederatedAssertion:
        # HTTP-POST binding: the form field is plain base64 of the XML document.
        try:
            document = base64.b64decode("".join(saml_response.split()), validate=True)
        except (binascii.Error, ValueError):
            # Leave it to the verifier to reject an unparsable document.
            document = b""
        return cls(document=document, relay_state=relay_state or None)


@dataclass(frozen=True, slots=True)
class RedirectInstruction:
    """Where to send the browser to start a federated login."""

    endpoint: str
    parameters: dict[str, str]
    request_id: str

    @property
    def url(self) -> str:
        separator = "&" if "?" in self.endpoint else "?"
        return f"{self.endpoint}{separator}{urlencode(self.parameters)}"


# --- Module Notes -----------------------------------------------------------
# `AuthenticatedIdentity` is constructed only in `authgate.auth.normalizer`.
