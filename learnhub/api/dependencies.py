from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from learnhub.db.engine import async_session_factory, session_scope
from learnhub.models.principal import Principal
from learnhub.repos.course_repo import CourseRepo, InMemoryCourseRepo
from learnhub.repos.pg_course_repo import PgCourseRepo
from learnhub.repos.pg_purchase_repo import PgPurchaseRepo
from learnhub.repos.pg_user_repo import PgUserRepo
from learnhub.repos.purchase_repo import InMemoryPurchaseRepo, PurchaseRepo
from learnhub.repos.user_repo import InMemoryUserRepo, UserRepo
from learnhub.services import token_service
from learnhub.services.cache import CacheService, cache_service
from learnhub.services.stripe_gateway import PaymentGateway, stripe_gateway

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------
# In-memory singletons serve every request when DATABASE_URL is unset.
# With a database, each dependency opens its own request-scoped session.

user_repo = InMemoryUserRepo()
purchase_repo = InMemoryPurchaseRepo()
course_repo = InMemoryCourseRepo()


async def get_user_repo() -> AsyncGenerator[UserRepo, None]:
    if async_session_factory is None:
        yield user_repo
        return
    async with session_scope() as session:
        yield PgUserRepo(session)


async def get_purchase_repo() -> AsyncGenerator[PurchaseRepo, None]:
    if async_session_factory is None:
        yield purchase_repo
        return
    async with session_scope() as session:
        yield PgPurchaseRepo(session)


async def get_course_repo() -> AsyncGenerator[CourseRepo, None]:
    if async_session_factory is None:
        yield course_repo
        return
    async with session_scope() as session:
        yield PgCourseRepo(session)


def get_payment_gateway() -> PaymentGateway:
    return stripe_gateway


def get_cache() -> CacheService:
    return cache_service


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
        user_id = UUID(claims["sub"])
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except (jwt.InvalidTokenError, ValueError) as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return Principal(user_id=user_id, roles=frozenset(claims.get("roles", [])))


def require_role(role: str):
    """Dependency factory: demand a specific role, else 403.

    Usage: Depends(require_role("admin"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized",
            )
        return principal

    return _guard
