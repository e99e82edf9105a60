"""
authgate.auth.errors

Failure taxonomy for authentication attempts.

Responsibilities:
- Enumerate the classified failure kinds surfaced to audit/logging.
- Provide `AuthFailure`, the value returned (never raised) by verifiers.
- Provide `ConfigError`, the single fatal error raised at startup.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

# The only message an end user ever sees, whatever the failure kind.
PUBLIC_REJECTION_MESSAGE = "Authentication failed"


class FailureKind(enum.StrEnum):
    not_applicable = "NOT_APPLICABLE"
    not_found = "NOT_FOUND"
    bad_credentials = "BAD_CREDENTIALS"
    invalid_assertion = "INVALID_ASSERTION"
    expired_or_replayed = "EXPIRED_OR_REPLAYED"
    audience_mismatch = "AUDIENCE_MISMATCH"
    identity_mismatch = "IDENTITY_MISMATCH"
    upstream_timeout = "UPSTREAM_TIMEOUT"
    config_error = "CONFIG_ERROR"


@dataclass(frozen=True, slots=True)
class AuthFailure:
    """
    Classified rejection of one authentication attempt.

    `detail` is for internal logs only and must never carry a secret or any part
    of a raw assertion payload.
    """

    kind: FailureKind
    detail: str = ""

    @property
    def public_message(self) -> str:
        return PUBLIC_REJECTION_MESSAGE


class ConfigError(Exception):
    """Invalid configuration detected at startup; the service must not start."""

    kind = FailureKind.config_error

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# --- Module Notes -----------------------------------------------------------
# Verification failures cross the caller boundary as `AuthFailure` values.
# `ConfigError` is raised only from configuration loading and app construction.
