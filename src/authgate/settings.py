"""
authgate.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, IdP certificate material).
- Offer a cached settings instance for dependency injection.

Raw settings are not consumed by the authentication core directly; they are
validated and frozen into an `AuthConfig` by `authgate.auth.config`.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AUTHGATE_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "authgate"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Dispatch markers (username suffixes), compared case-insensitively.
    local_domain_marker: str = "@dbauth.com"
    federated_domain_marker: str = "@oktaauth.com"

    # Identity provider
    idp_metadata_endpoint: str | None = None
    idp_issuer: str | None = None
    idp_sso_url: str | None = None
    idp_certificate: str | None = Field(default=None, repr=False)

    # This service as a SAML service provider
    audience_identifier: str = "urn:authgate:sp"
    acs_url: str = "http://localhost:8080/v1/auth/federated/acs"

    assertion_clock_skew_seconds: int = 120
    upstream_timeout_seconds: float = 5.0

    # Session tokens issued after a successful login
    jwt_alg: str = "HS256"
    jwt_issuer: str = "authgate"
    jwt_audience: str = "authgate-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    session_ttl_minutes: int = 60

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./authgate.db"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every option here can be supplied as AUTHGATE_<NAME>; e.g.
# AUTHGATE_FEDERATED_DOMAIN_MARKER=@oktaauth.com.
