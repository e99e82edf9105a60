"""
authgate.auth.normalizer

Identity normalization.

Responsibilities:
- Build the canonical `AuthenticatedIdentity` from a stored record and the
  method that authenticated it.
- Rebuild the same value from validated session token claims.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from authgate.auth.models import AuthenticatedIdentity, AuthMethod, StoredIdentityRecord


def normalize(record: StoredIdentityRecord, method: AuthMethod) -> AuthenticatedIdentity:
    # The stored username is canonical; the submitted one may differ in case.
    return AuthenticatedIdentity(username=record.username, method=method, authorities=frozenset())


def identity_from_claims(claims: Mapping[str, Any]) -> AuthenticatedIdentity:
    """
    Raises ValueError when the claims do not describe an identity this service issued.
    """

    subject = str(claims.get("sub", ""))
    if not subject:
        raise ValueError("missing subject")
    method = AuthMethod(str(claims.get("method", "")))
    return normalize(StoredIdentityRecord(username=subject), method)


# --- Module Notes -----------------------------------------------------------
# Both verifiers converge on `normalize`; session/authorization code never sees
# which path produced an identity except through `AuthenticatedIdentity.method`.
