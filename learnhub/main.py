from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnhub.api.admin import router as admin_router
from learnhub.api.auth import router as auth_router
from learnhub.api.courses import router as courses_router
from learnhub.api.health import router as health_router
from learnhub.api.metrics_endpoint import router as metrics_router
from learnhub.api.payment import router as payment_router
from learnhub.api.progress import router as progress_router
from learnhub.core.config import SETTINGS
from learnhub.core.logging import setup_logging
from learnhub.db.engine import lifespan_db
from learnhub.db.redis import lifespan_redis
from learnhub.middleware.metrics import MetricsMiddleware
from learnhub.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Teardown runs in reverse order: Redis closes before the DB engine.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="learnhub-api",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext -> Metrics -> CORS -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(admin_router)
# Before courses_router: "/api/courses/enroll" must not match "/{course_id}".
app.include_router(progress_router)
app.include_router(courses_router)
app.include_router(payment_router)

logger.info(
    "learnhub-api started  env=%s log_level=%s port=%d docs=%s stripe=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
    "configured" if SETTINGS.stripe_secret_key else "not_configured",
)
