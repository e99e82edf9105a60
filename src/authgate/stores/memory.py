"""
authgate.stores.memory

In-memory store implementations.

Responsibilities:
- Back the credential store with a dict keyed by lower-cased username.
- Back the replay store with a dict of assertion id -> expiry.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from authgate.auth.models import StoredIdentityRecord


class InMemoryCredentialStore:
    def __init__(self, records: Iterable[StoredIdentityRecord] = ()) -> None:
        self._records: dict[str, StoredIdentityRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: StoredIdentityRecord) -> None:
        self._records[record.username.lower()] = record

    async def find_by_username(self, username: str) -> StoredIdentityRecord | None:
        return self._records.get(username.lower())


class InMemoryReplayStore:
    def __init__(self) -> None:
        self._seen: dict[str, datetime] = {}

    async def seen(self, assertion_id: str) -> bool:
        return assertion_id in self._seen

    async def record(self, assertion_id: str, expiry: datetime) -> None:
        self._seen[assertion_id] = expiry

    def purge_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(tz=UTC)
        expired = [key for key, expiry in self._seen.items() if expiry <= now]
        for key in expired:
            del self._seen[key]
        return len(expired)


# --- Module Notes -----------------------------------------------------------
# The federated verifier records expiries with clock skew already added, so a
# purged id belongs to an assertion that can no longer pass the freshness check.
