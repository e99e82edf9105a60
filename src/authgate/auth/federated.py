"""
authgate.auth.federated

Federated (SAML) assertion verifier: the consuming half of the SSO exchange.

Responsibilities:
- Build the provider-bound redirect that starts a federated login.
- Verify a returned assertion: signature, issuer, freshness, replay,
  audience/recipient, subject routing, and the backing local record.
- Emit an audit event for every verification outcome.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from authgate.auth.audit import AuditSink, LogAuditSink, audit_event
from authgate.auth.config import AuthConfig
from authgate.auth.errors import AuthFailure, FailureKind
from authgate.auth.models import (
    AuthMethod,
    AuthResult,
    Classification,
    FederatedAssertion,
    RedirectInstruction,
)
from authgate.auth.normalizer import normalize
from authgate.auth.policy import DispatchPolicy
from authgate.auth.saml import (
    ParsedAssertion,
    SamlError,
    build_authn_request,
    encode_redirect,
    new_request_id,
    parse_document,
    read_assertion,
    verify_assertion_signature,
)
from authgate.auth.upstream import UpstreamFailure, bounded
from authgate.observability.logging import get_logger
from authgate.stores.protocols import CredentialStore, ReplayConflict, ReplayStore

log = get_logger(__name__)

_UNKNOWN_SUBJECT = "<unverified>"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class FederatedVerifier:
    def __init__(
        self,
        *,
        config: AuthConfig,
        store: CredentialStore,
        replay: ReplayStore,
        audit: AuditSink | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._policy = DispatchPolicy(config.markers)
        self._store = store
        self._replay = replay
        self._audit = audit or LogAuditSink()
        self._clock = clock

    def begin_federated_login(
        self,
        relay_state: str | None = None,
        *,
        request_id: str | None = None,
        now: datetime | None = None,
    ) -> RedirectInstruction:
        # Pure construction: nothing is stored, so the ACS never needs to look this up.
        request_id = request_id or new_request_id()
        message = build_authn_request(
            request_id=request_id,
            issue_instant=now or self._clock(),
            destination=self._config.idp_sso_url,
            acs_url=self._config.acs_url,
            sp_entity_id=self._config.audience_identifier,
        )
        parameters = {"SAMLRequest": encode_redirect(message)}
        if relay_state:
            parameters["RelayState"] = relay_state
        return RedirectInstruction(
            endpoint=self._config.idp_sso_url, parameters=parameters, request_id=request_id
        )

    async def verify_federated(
        self, assertion: FederatedAssertion, *, expected_subject: str | None = None
    ) -> AuthResult:
        """
        `expected_subject` is the username that started the login, when known; an
        assertion about anyone else is IDENTITY_MISMATCH.
        """

        subject, result = await self._verify(assertion, expected_subject)
        await self._audit.emit(audit_event(subject or _UNKNOWN_SUBJECT, AuthMethod.federated, result))
        return result

    async def _verify(
        self, assertion: FederatedAssertion, expected_subject: str | None
    ) -> tuple[str | None, AuthResult]:
        try:
            signed = verify_assertion_signature(
                parse_document(assertion.document), self._config.idp_certificate
            )
            parsed = read_assertion(signed)
        except SamlError as e:
            log.info("assertion_rejected", reason=str(e))
            return None, AuthFailure(FailureKind.invalid_assertion, str(e))

        if parsed.issuer != self._config.idp_issuer:
            return parsed.subject, AuthFailure(FailureKind.invalid_assertion, "unexpected issuer")

        failure = self._check_window(parsed)
        if failure is not None:
            return parsed.subject, failure

        try:
            replayed = await bounded(
                self._replay.seen(parsed.assertion_id),
                timeout=self._config.upstream_timeout,
                what="replay store",
            )
        except UpstreamFailure as e:
            return parsed.subject, AuthFailure(FailureKind.upstream_timeout, str(e))
        if replayed:
            return parsed.subject, AuthFailure(
                FailureKind.expired_or_replayed, "assertion id already consumed"
            )

        failure = self._check_audience(parsed)
        if failure is not None:
            return parsed.subject, failure

        subject = parsed.subject
        if not subject or self._policy.classify(subject) is not Classification.federated:
            return subject, AuthFailure(
                FailureKind.identity_mismatch, "subject is not a federated username"
            )
        if expected_subject is not None and subject.lower() != expected_subject.lower():
            return subject, AuthFailure(
                FailureKind.identity_mismatch, "assertion subject differs from username"
            )

        try:
            # Burn the id before the account lookup so a NOT_FOUND cannot be replayed either.
            await bounded(
                self._replay.record(
                    parsed.assertion_id, parsed.not_on_or_after + self._config.clock_skew
                ),
                timeout=self._config.upstream_timeout,
                what="replay store",
            )
            record = await bounded(
                self._store.find_by_username(subject),
                timeout=self._config.upstream_timeout,
                what="credential store",
            )
        except ReplayConflict:
            return subject, AuthFailure(
                FailureKind.expired_or_replayed, "assertion id consumed concurrently"
            )
        except UpstreamFailure as e:
            log.warning("federated_upstream_failed", username=subject, reason=str(e))
            return subject, AuthFailure(FailureKind.upstream_timeout, str(e))
        if record is None:
            return subject, AuthFailure(FailureKind.not_found, "no local account for subject")

        return subject, normalize(record, AuthMethod.federated)

    def _check_window(self, parsed: ParsedAssertion) -> AuthFailure | None:
        now = self._clock()
        skew = self._config.clock_skew
        if parsed.issue_instant - skew > now:
            return AuthFailure(FailureKind.expired_or_replayed, "issued in the future")
        if parsed.not_before is not None and parsed.not_before - skew > now:
            return AuthFailure(FailureKind.expired_or_replayed, "not yet valid")
        if now >= parsed.not_on_or_after + skew:
            return AuthFailure(FailureKind.expired_or_replayed, "expired")
        return None

    def _check_audience(self, parsed: ParsedAssertion) -> AuthFailure | None:
        if self._config.audience_identifier not in parsed.audiences:
            return AuthFailure(FailureKind.audience_mismatch, "audience does not name this service")
        if parsed.recipients and self._config.acs_url not in parsed.recipients:
            return AuthFailure(FailureKind.audience_mismatch, "recipient is not this service")
        return None


# --- Module Notes -----------------------------------------------------------
# Federation authenticates but never provisions: a verified subject with no
# local record is rejected with NOT_FOUND.
