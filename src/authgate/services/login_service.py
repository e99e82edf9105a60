"""
authgate.services.login_service

Login lifecycle service (transaction owner).

Responsibilities:
- Bind the authentication coordinator to the SQL-backed stores for one request.
- Commit audit and replay writes once per attempt.
- Issue session tokens for authenticated identities.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from authgate.auth.audit import FanoutAuditSink, LogAuditSink
from authgate.auth.config import AuthConfig
from authgate.auth.coordinator import build_coordinator
from authgate.auth.errors import AuthFailure, FailureKind
from authgate.auth.jwt import JwtConfig, issue_token
from authgate.auth.models import (
    AuthenticatedIdentity,
    AuthResult,
    Classification,
    FederatedAssertion,
    RedirectInstruction,
)
from authgate.auth.passwords import SecretHasher
from authgate.db.repositories.audit import AuditRepo
from authgate.db.repositories.identities import IdentityRepo
from authgate.db.repositories.replay import ReplayRepo
from authgate.observability.logging import get_logger
from authgate.settings import Settings

log = get_logger(__name__)


class LoginService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        config: AuthConfig,
        settings: Settings,
        hasher: SecretHasher | None = None,
    ) -> None:
        self._session = session
        self._audit = AuditRepo(session)
        self._coordinator = build_coordinator(
            config=config,
            store=IdentityRepo(session),
            replay=ReplayRepo(session),
            audit=FanoutAuditSink([LogAuditSink(), self._audit]),
            hasher=hasher,
        )
        self._jwt = JwtConfig.from_settings(settings)
        self._session_ttl = timedelta(minutes=settings.session_ttl_minutes)

    def begin_federated(self, username: str) -> RedirectInstruction | AuthFailure:
        # Gate before redirecting: only federated usernames are sent to the IdP.
        if self._coordinator.classify(username) is not Classification.federated:
            return AuthFailure(FailureKind.not_applicable, "username is not federated")
        log.info("federated_login_started", username=username)
        return self._coordinator.begin_federated_login(relay_state=username)

    async def login_local(self, username: str, password: str) -> AuthResult:
        result = await self._coordinator.authenticate(username, password)
        await self._session.commit()
        return result

    async def login_federated(self, assertion: FederatedAssertion) -> AuthResult:
        if assertion.relay_state:
            result = await self._coordinator.authenticate(assertion.relay_state, assertion)
        else:
            # IdP-initiated: no username was submitted, the verifier alone decides.
            result = await self._coordinator.verify_federated(assertion)

        await self._session.commit()
        return result

    def issue_session_token(self, identity: AuthenticatedIdentity) -> str:
        return issue_token(cfg=self._jwt, identity=identity, ttl=self._session_ttl)


# --- Module Notes -----------------------------------------------------------
# One service instance per request; the coordinator it builds holds no state
# beyond the request-scoped DB session.
