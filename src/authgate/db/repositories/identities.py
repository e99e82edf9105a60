"""
authgate.db.repositories.identities

Repository for `IdentityRecord` entities; implements `CredentialStore`.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.auth.models import AuthMethod, StoredIdentityRecord
from authgate.db.models import IdentityRecord
from authgate.stores.protocols import StoreUnavailable


class IdentityRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_username(self, username: str) -> StoredIdentityRecord | None:
        stmt = select(IdentityRecord).where(IdentityRecord.username_key == username.lower())
        try:
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        except DBAPIError as e:
            raise StoreUnavailable("identity lookup failed") from e
        if row is None:
            return None
        return StoredIdentityRecord(username=row.username, secret_hash=row.secret_hash, method=row.method)

    async def create(
        self,
        *,
        username: str,
        method: AuthMethod,
        secret_hash: str | None = None,
    ) -> IdentityRecord:
        # Provisioning belongs to account management; the login path never writes here.
        record = IdentityRecord(
            username=username,
            username_key=username.lower(),
            secret_hash=secret_hash,
            method=method,
        )
        self._session.add(record)
        await self._session.flush()
        return record
