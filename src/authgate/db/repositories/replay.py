"""
authgate.db.repositories.replay

Repository for consumed assertion ids; implements `ReplayStore`.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.db.models import SeenAssertion
from authgate.stores.protocols import ReplayConflict, StoreUnavailable


class ReplayRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def seen(self, assertion_id: str) -> bool:
        stmt = select(SeenAssertion.assertion_id).where(SeenAssertion.assertion_id == assertion_id)
        try:
            return (await self._session.execute(stmt)).first() is not None
        except DBAPIError as e:
            raise StoreUnavailable("replay lookup failed") from e

    async def record(self, assertion_id: str, expiry: datetime) -> None:
        # Savepoint so a primary-key clash rolls back only this insert.
        try:
            async with self._session.begin_nested():
                self._session.add(SeenAssertion(assertion_id=assertion_id, expires_at=expiry))
        except IntegrityError as e:
            raise ReplayConflict(assertion_id) from e
        except DBAPIError as e:
            raise StoreUnavailable("replay record failed") from e

    async def purge_expired(self, now: datetime | None = None) -> int:
        stmt = delete(SeenAssertion).where(SeenAssertion.expires_at <= (now or datetime.now(tz=UTC)))
        result = await self._session.execute(stmt)
        return result.rowcount or 0


# --- Module Notes -----------------------------------------------------------
# The primary key on assertion_id is the final arbiter when two requests carry
# the same assertion; `seen` is only the fast path.
