"""
authgate.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, auth config and DB sessions.
- Build the request-scoped `LoginService`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authgate.auth.config import AuthConfig
from authgate.auth.passwords import SecretHasher
from authgate.services.login_service import LoginService
from authgate.settings import Settings


def settings_from_app(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def auth_config_from_app(request: Request) -> AuthConfig:
    # Loaded and validated once during app startup (see `authgate.api.app`).
    return request.app.state.auth_config  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


def hasher_from_app(request: Request) -> SecretHasher:
    return request.app.state.hasher  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def login_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_from_app),
    config: AuthConfig = Depends(auth_config_from_app),
    hasher: SecretHasher = Depends(hasher_from_app),
) -> LoginService:
    return LoginService(
        session=session,
        config=config,
        settings=settings,
        hasher=hasher,
    )
