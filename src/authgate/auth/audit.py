"""
authgate.auth.audit

Audit events for authentication attempts.

Responsibilities:
- Define the audit event shape (username + outcome, never secrets).
- Provide a structlog-backed sink and a fan-out sink for composition.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from authgate.auth.errors import AuthFailure, FailureKind
from authgate.auth.models import AuthMethod, AuthResult
from authgate.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AuthAuditEvent:
    username: str
    outcome: str  # "SUCCESS" | "FAILURE"
    method: AuthMethod | None = None
    failure_kind: FailureKind | None = None


class AuditSink(Protocol):
    async def emit(self, event: AuthAuditEvent) -> None: ...


class LogAuditSink:
    async def emit(self, event: AuthAuditEvent) -> None:
        log.info(
            "auth_audit",
            username=event.username,
            outcome=event.outcome,
            method=event.method.value if event.method else None,
            failure_kind=event.failure_kind.value if event.failure_kind else None,
        )


class FanoutAuditSink:
    def __init__(self, sinks: Iterable[AuditSink]) -> None:
        self._sinks = tuple(sinks)

    async def emit(self, event: AuthAuditEvent) -> None:
        for sink in self._sinks:
            await sink.emit(event)


def audit_event(username: str, method: AuthMethod, result: AuthResult) -> AuthAuditEvent:
    if isinstance(result, AuthFailure):
        return AuthAuditEvent(
            username=username, outcome="FAILURE", method=method, failure_kind=result.kind
        )
    return AuthAuditEvent(username=result.username, outcome="SUCCESS", method=result.method)


# --- Module Notes -----------------------------------------------------------
# The SQL-backed sink is `authgate.db.repositories.audit.AuditRepo`.
