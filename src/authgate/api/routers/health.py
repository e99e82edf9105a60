"""
authgate.api.routers.health

Liveness and readiness probes.

`/readyz` reads from the replay table, so it fails until the schema exists and
the database answers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.api.deps import db_session
from authgate.db.models import SeenAssertion

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    await session.execute(select(SeenAssertion.assertion_id).limit(1))
    return {"status": "ready"}
