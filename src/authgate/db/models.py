"""
authgate.db.models

Persistence schema.

Responsibilities:
- IdentityRecord: provisioned accounts (local secret hash or federated-only).
- SeenAssertion: consumed SAML assertion ids, kept until they expire.
- AuthAuditEvent: append-only login audit trail (no secrets).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, Index, String, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from authgate.auth.errors import FailureKind
from authgate.auth.models import AuthMethod
from authgate.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class IdentityRecord(Base):
    __tablename__ = "identity_records"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    username: Mapped[str] = mapped_column(String(320), nullable=False)
    # Lower-cased copy of `username`; all lookups go through this column.
    username_key: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    secret_hash: Mapped[str | None] = mapped_column(String(512), nullable=True)
    method: Mapped[AuthMethod] = mapped_column(Enum(AuthMethod), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class SeenAssertion(Base):
    __tablename__ = "seen_assertions"

    assertion_id: Mapped[str] = mapped_column(String(256), primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class AuthAuditEvent(Base):
    __tablename__ = "auth_audit_events"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    username: Mapped[str] = mapped_column(String(320), nullable=False)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False)
    method: Mapped[AuthMethod | None] = mapped_column(Enum(AuthMethod), nullable=True)
    failure_kind: Mapped[FailureKind | None] = mapped_column(Enum(FailureKind), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )

    __table_args__ = (Index("ix_auth_audit_username_created", "username", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# Enum columns store the member *names* (SQLAlchemy default), e.g. "local".
