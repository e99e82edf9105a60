"""
authgate.auth.coordinator

Authentication coordinator: the single entry point for login attempts.

Responsibilities:
- Classify the submitted username and run exactly one verifier path.
- Track each attempt through an explicit state machine.
- Surface the verifier's result unchanged (no fallthrough, no retries).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from authgate.auth.audit import AuditSink, LogAuditSink
from authgate.auth.config import AuthConfig
from authgate.auth.errors import AuthFailure, FailureKind
from authgate.auth.federated import FederatedVerifier
from authgate.auth.local import LocalVerifier
from authgate.auth.models import (
    AuthenticatedIdentity,
    AuthResult,
    Classification,
    FederatedAssertion,
    RedirectInstruction,
)
from authgate.auth.passwords import SecretHasher
from authgate.auth.policy import DispatchPolicy
from authgate.observability.logging import get_logger
from authgate.stores.protocols import CredentialStore, ReplayStore

log = get_logger(__name__)


class AttemptState(enum.StrEnum):
    awaiting_input = "AWAITING_INPUT"
    classified = "CLASSIFIED"
    local_pending = "LOCAL_PENDING"
    federated_pending = "FEDERATED_PENDING"
    authenticated = "AUTHENTICATED"
    rejected = "REJECTED"


_TRANSITIONS: dict[AttemptState, frozenset[AttemptState]] = {
    AttemptState.awaiting_input: frozenset({AttemptState.classified}),
    AttemptState.classified: frozenset(
        {AttemptState.local_pending, AttemptState.federated_pending, AttemptState.rejected}
    ),
    AttemptState.local_pending: frozenset({AttemptState.authenticated, AttemptState.rejected}),
    AttemptState.federated_pending: frozenset(
        {AttemptState.authenticated, AttemptState.rejected}
    ),
    AttemptState.authenticated: frozenset(),
    AttemptState.rejected: frozenset(),
}


class IllegalTransition(RuntimeError):
    pass


@dataclass(slots=True)
class AuthAttempt:
    username: str
    state: AttemptState = AttemptState.awaiting_input
    classification: Classification | None = None
    result: AuthResult | None = None
    history: list[AttemptState] = field(default_factory=lambda: [AttemptState.awaiting_input])

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]

    def advance(self, target: AttemptState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise IllegalTransition(f"{self.state} -> {target}")
        self.state = target
        self.history.append(target)

    def finish(self, result: AuthResult) -> AuthResult:
        self.result = result
        if isinstance(result, AuthenticatedIdentity):
            self.advance(AttemptState.authenticated)
        else:
            self.advance(AttemptState.rejected)
        return result


class AuthenticationCoordinator:
    """
    Policy -> verifier -> normalizer.

    Classification is a hard gate: a LOCAL username never reaches the federated
    verifier and vice versa, whatever the outcome of its own path.
    """

    def __init__(
        self,
        *,
        policy: DispatchPolicy,
        local: LocalVerifier,
        federated: FederatedVerifier,
    ) -> None:
        self._policy = policy
        self._local = local
        self._federated = federated

    def classify(self, username: str) -> Classification:
        return self._policy.classify(username)

    def begin_federated_login(self, relay_state: str | None = None) -> RedirectInstruction:
        return self._federated.begin_federated_login(relay_state)

    async def verify_local(self, username: str, secret: str) -> AuthResult:
        return await self._local.verify_local(username, secret)

    async def verify_federated(self, assertion: FederatedAssertion) -> AuthResult:
        return await self._federated.verify_federated(assertion)

    async def authenticate(
        self, username: str, secret_or_assertion: str | FederatedAssertion
    ) -> AuthResult:
        attempt = await self.attempt(username, secret_or_assertion)
        # `attempt` always ends in a terminal state with its result set.
        return attempt.result  # type: ignore[return-value]

    async def attempt(
        self, username: str, secret_or_assertion: str | FederatedAssertion
    ) -> AuthAttempt:
        attempt = AuthAttempt(username=username)
        attempt.classification = self._policy.classify(username)
        attempt.advance(AttemptState.classified)

        if attempt.classification is Classification.local:
            if not isinstance(secret_or_assertion, str):
                attempt.finish(
                    AuthFailure(FailureKind.not_applicable, "local username given an assertion")
                )
            else:
                attempt.advance(AttemptState.local_pending)
                attempt.finish(await self._local.verify_local(username, secret_or_assertion))
        elif attempt.classification is Classification.federated:
            if not isinstance(secret_or_assertion, FederatedAssertion):
                attempt.finish(
                    AuthFailure(FailureKind.not_applicable, "federated username given a secret")
                )
            else:
                attempt.advance(AttemptState.federated_pending)
                attempt.finish(
                    await self._federated.verify_federated(
                        secret_or_assertion, expected_subject=username
                    )
                )
        else:
            # Rejected before any verifier (and so any store) is touched.
            attempt.finish(AuthFailure(FailureKind.not_applicable, "username matches no marker"))

        log.info(
            "auth_attempt",
            username=username,
            classification=attempt.classification.value,
            states=[s.value for s in attempt.history],
            failure_kind=attempt.result.kind.value
            if isinstance(attempt.result, AuthFailure)
            else None,
        )
        return attempt


def build_coordinator(
    *,
    config: AuthConfig,
    store: CredentialStore,
    replay: ReplayStore,
    audit: AuditSink | None = None,
    hasher: SecretHasher | None = None,
) -> AuthenticationCoordinator:
    audit = audit or LogAuditSink()
    return AuthenticationCoordinator(
        policy=DispatchPolicy(config.markers),
        local=LocalVerifier(config=config, store=store, audit=audit, hasher=hasher),
        federated=FederatedVerifier(config=config, store=store, replay=replay, audit=audit),
    )


# --- Module Notes -----------------------------------------------------------
# AUTHENTICATED and REJECTED have no outgoing transitions; a caller wanting a
# second try starts a new attempt.
