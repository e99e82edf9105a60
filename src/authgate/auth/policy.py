"""
authgate.auth.policy

Dispatch policy: decide which verifier owns a username.
"""

from __future__ import annotations

from authgate.auth.config import DomainMarkers
from authgate.auth.models import AuthMethod, Classification


class DispatchPolicy:
    """Case-insensitive suffix match against the two configured markers."""

    def __init__(self, markers: DomainMarkers) -> None:
        self._markers = markers

    def classify(self, username: str) -> Classification:
        key = username.lower()
        # Markers are validated disjoint at load time, so at most one branch matches.
        if key.endswith(self._markers.local):
            return Classification.local
        if key.endswith(self._markers.federated):
            return Classification.federated
        return Classification.invalid

    @staticmethod
    def method_for(classification: Classification) -> AuthMethod | None:
        if classification is Classification.local:
            return AuthMethod.local
        if classification is Classification.federated:
            return AuthMethod.federated
        return None
