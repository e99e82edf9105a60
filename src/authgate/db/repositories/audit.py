"""
authgate.db.repositories.audit

Repository for `AuthAuditEvent` entities; implements `AuditSink`.

Responsibilities:
- Append login audit events (username + outcome + failure kind).
- Query the trail per username for support and compliance.
"""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.auth.audit import AuthAuditEvent as AuditEventValue
from authgate.db.models import AuthAuditEvent


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def emit(self, event: AuditEventValue) -> None:
        # Append-only; rows are never updated.
        self._session.add(
            AuthAuditEvent(
                username=event.username,
                outcome=event.outcome,
                method=event.method,
                failure_kind=event.failure_kind,
            )
        )
        await self._session.flush()

    async def list_for_username(self, username: str, *, limit: int = 100) -> list[AuthAuditEvent]:
        stmt = (
            select(AuthAuditEvent)
            .where(AuthAuditEvent.username == username)
            .order_by(desc(AuthAuditEvent.created_at))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())
