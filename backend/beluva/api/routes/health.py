"""Health check endpoint with database and object storage probes.

Each probe has a short timeout. A probe reporting "disconnected" does not
change the overall status: the endpoint always returns 200 so load balancers
keep routing.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter
from sqlalchemy import text

from beluva.config import settings
from beluva.database import engine
from beluva.utils import storage

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

_CHECK_TIMEOUT = 3.0  # seconds per service check


async def _check_postgres() -> str:
    """Run SELECT 1 on a pooled connection."""

    async def _ping() -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_ping(), timeout=_CHECK_TIMEOUT)
        return "connected"
    except Exception as exc:
        logger.debug("health_postgres_failed", error=str(exc))
        return "disconnected"


async def _check_storage() -> str:
    """Check bucket accessibility via head_bucket."""
    try:
        await asyncio.wait_for(asyncio.to_thread(storage.head_bucket), timeout=_CHECK_TIMEOUT)
        return "connected"
    except Exception as exc:
        logger.debug("health_storage_failed", error=str(exc))
        return "disconnected"


@router.get("/health")
async def health_check() -> dict:
    """Liveness plus connectivity of PostgreSQL and object storage."""
    postgres, object_storage = await asyncio.gather(_check_postgres(), _check_storage())
    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "postgres": postgres,
        "storage": object_storage,
    }
