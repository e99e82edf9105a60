"""
authgate.auth.upstream

Bounded calls to external collaborators (credential store, replay store).

Responsibilities:
- Apply the configured upstream timeout to a single awaited call.
- Convert a timeout or a store fault into an `UpstreamFailure` so verifiers
  can classify it instead of letting it escape.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from authgate.stores.protocols import StoreUnavailable

T = TypeVar("T")


class UpstreamFailure(Exception):
    pass


class UpstreamTimeout(UpstreamFailure):
    pass


class UpstreamUnavailable(UpstreamFailure):
    pass


async def bounded(call: Awaitable[T], *, timeout: float, what: str) -> T:
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except TimeoutError as e:
        raise UpstreamTimeout(f"{what} did not answer within {timeout:g}s") from e
    except (StoreUnavailable, OSError) as e:
        raise UpstreamUnavailable(f"{what} is unavailable") from e


# --- Module Notes -----------------------------------------------------------
# asyncio.wait_for cancels the inner call on timeout; store implementations must
# tolerate cancellation (async SQLAlchemy sessions and httpx clients do).
# `ReplayConflict` is not a fault and passes through unchanged.
