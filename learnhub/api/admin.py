from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from learnhub.api.dependencies import get_course_repo, get_user_repo, require_role
from learnhub.models.principal import Principal
from learnhub.repos.course_repo import CourseRepo
from learnhub.repos.user_repo import UserRepo
from learnhub.services import users_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["admin"])


class UserSummaryOut(BaseModel):
    name: str
    email: str
    mobile: str | None = None
    isAdmin: bool
    progress: int


@router.get("/users", response_model=list[UserSummaryOut])
async def admin_list_users(
    principal: Annotated[Principal, Depends(require_role("admin"))],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    courses: Annotated[CourseRepo, Depends(get_course_repo)],
) -> list[UserSummaryOut]:
    logger.info("Admin user list requested by user=%s", principal.user_id)
    summaries = await users_service.summarize_users(users, courses)
    return [
        UserSummaryOut(
            name=s.name,
            email=s.email,
            mobile=s.mobile,
            isAdmin=s.is_admin,
            progress=s.progress,
        )
        for s in summaries
    ]
