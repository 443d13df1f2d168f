"""Redis connection management.

Mirrors engine.py: with REDIS_URL set, a shared connection pool is created
at import time; without it ``redis_pool`` is None and the cache falls
back to an in-process dict.  Redis only ever holds derived, disposable
data here (cached purchase listings), never the ledger itself.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from learnhub.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis.

    An unreachable Redis is logged but does not stop startup: the cache
    is an optimization and reads fall through to the ledger.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, cache uses in-memory fallback")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
