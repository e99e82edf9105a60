"""
authgate.api.app

FastAPI app factory for the authgate service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Validate configuration before the app can be constructed or started.
- Initialize and dispose shared infrastructure (DB engine/session factory).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from authgate import __version__
from authgate.api.routers.auth import router as auth_router
from authgate.api.routers.health import router as health_router
from authgate.auth.config import AuthConfig, build_markers, load_auth_config
from authgate.auth.passwords import SecretHasher
from authgate.db.init_db import init_db
from authgate.db.session import create_engine, create_sessionmaker
from authgate.idp.metadata import fetch_idp_metadata
from authgate.observability.logging import configure_logging, get_logger
from authgate.observability.middleware import RequestContextMiddleware
from authgate.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    auth_config: AuthConfig | None = None,
    hasher: SecretHasher | None = None,
) -> FastAPI:
    """
    Raises ConfigError when the dispatch markers are unusable; IdP material that
    must be discovered over HTTP is validated during startup instead.
    """

    configure_logging(service_name=settings.service_name, level=settings.log_level)

    # Fail before anything is served: marker problems need no network to detect.
    build_markers(settings.local_domain_marker, settings.federated_domain_marker)
    needs_discovery = auth_config is None and not (settings.idp_certificate and settings.idp_sso_url)
    if auth_config is None and not needs_discovery:
        auth_config = load_auth_config(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        config = auth_config
        if config is None:
            if not settings.idp_metadata_endpoint:
                config = load_auth_config(settings)  # raises ConfigError with the missing field
            else:
                metadata = await fetch_idp_metadata(
                    settings.idp_metadata_endpoint, timeout=settings.upstream_timeout_seconds
                )
                config = load_auth_config(settings, metadata=metadata)
        app.state.auth_config = config

        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            await init_db(engine)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="authgate",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.hasher = hasher or SecretHasher()

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)

    return app


# --- Module Notes -----------------------------------------------------------
# `AuthConfig` lives on app.state and is handed to each request's LoginService;
# nothing below the API layer reads settings on its own.
