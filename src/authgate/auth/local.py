"""
authgate.auth.local

Local credential verifier.

Responsibilities:
- Decline usernames the dispatch policy does not route to the local store.
- Look up the stored record and compare the presented secret against its
  argon2 hash in constant time.
- Emit an audit event for every outcome.
"""

from __future__ import annotations

import asyncio

from authgate.auth.audit import AuditSink, LogAuditSink, audit_event
from authgate.auth.config import AuthConfig
from authgate.auth.errors import AuthFailure, FailureKind
from authgate.auth.models import AuthMethod, AuthResult, Classification
from authgate.auth.normalizer import normalize
from authgate.auth.passwords import SecretHasher
from authgate.auth.policy import DispatchPolicy
from authgate.auth.upstream import UpstreamFailure, bounded
from authgate.observability.logging import get_logger
from authgate.stores.protocols import CredentialStore

log = get_logger(__name__)


class LocalVerifier:
    def __init__(
        self,
        *,
        config: AuthConfig,
        store: CredentialStore,
        audit: AuditSink | None = None,
        hasher: SecretHasher | None = None,
    ) -> None:
        self._config = config
        self._policy = DispatchPolicy(config.markers)
        self._store = store
        self._audit = audit or LogAuditSink()
        self._hasher = hasher or SecretHasher()

    async def verify_local(self, username: str, secret: str) -> AuthResult:
        result = await self._verify(username, secret)
        await self._audit.emit(audit_event(username, AuthMethod.local, result))
        return result

    async def _verify(self, username: str, secret: str) -> AuthResult:
        if self._policy.classify(username) is not Classification.local:
            return AuthFailure(FailureKind.not_applicable, "username is not routed to the local store")

        try:
            record = await bounded(
                self._store.find_by_username(username),
                timeout=self._config.upstream_timeout,
                what="credential store",
            )
        except UpstreamFailure as e:
            log.warning("local_lookup_failed", username=username, reason=str(e))
            return AuthFailure(FailureKind.upstream_timeout, str(e))
        if record is None:
            return AuthFailure(FailureKind.not_found, "no stored record")

        # argon2 is deliberately slow; keep it off the event loop.
        matched = await asyncio.to_thread(self._hasher.verify, secret, record.secret_hash)
        if not matched:
            return AuthFailure(FailureKind.bad_credentials, "secret did not match")
        return normalize(record, AuthMethod.local)


# --- Module Notes -----------------------------------------------------------
# The plaintext secret only ever reaches `SecretHasher.verify`; it is not part of
# any failure value, audit event or log record.
