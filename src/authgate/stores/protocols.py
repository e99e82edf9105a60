"""
authgate.stores.protocols

Structural interfaces for the two external stores.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from authgate.auth.models import StoredIdentityRecord


@runtime_checkable
class CredentialStore(Protocol):
    async def find_by_username(self, username: str) -> StoredIdentityRecord | None:
        """Case-insensitive lookup; `None` when no record exists."""
        ...


@runtime_checkable
class ReplayStore(Protocol):
    async def seen(self, assertion_id: str) -> bool: ...

    async def record(self, assertion_id: str, expiry: datetime) -> None: ...


class ReplayConflict(Exception):
    """`record` lost a race: the assertion id was recorded by a concurrent attempt."""


class StoreUnavailable(Exception):
    """The backing store failed to answer (connection lost, database error)."""
