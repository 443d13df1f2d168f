"""Health and readiness endpoints.

  /health (liveness): always 200 while the process can answer; the body
    reports each backing service as ok, degraded or not_configured.

  /ready (readiness): 503 when the database is configured but does not
    answer, so the load balancer stops routing here until it recovers.
    Redis is not part of readiness: the cache falls back to the ledger.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from learnhub.db import engine as db_engine
from learnhub.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _database_status() -> str:
    if db_engine.engine is None:
        return "not_configured"
    return "ok" if await db_engine.ping_database() else "degraded"


async def _redis_status() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis ping failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _database_status(),
        "redis": await _redis_status(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _database_status() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
