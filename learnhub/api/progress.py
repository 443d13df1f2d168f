"""Enrollment and progress endpoints.

Mounted under the catalog prefix; included before the catalog router so
``/enroll`` and ``/progress`` are not captured by ``/{course_id}``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from learnhub.api.dependencies import get_user_repo, require_user
from learnhub.models.enrollment import Enrollment
from learnhub.models.principal import Principal
from learnhub.repos.user_repo import UserRepo
from learnhub.services import enrollment_service
from learnhub.services.errors import (
    AlreadyEnrolledError,
    InvalidRequestError,
    NotEnrolledError,
    UserNotFoundError,
)

router = APIRouter(prefix="/api/courses", tags=["progress"])


class EnrollIn(BaseModel):
    courseTitle: str = ""


class ProgressIn(BaseModel):
    courseTitle: str = ""
    progress: int | None = None
    completedTopic: str | None = None


class EnrollmentOut(BaseModel):
    courseId: str
    title: str
    progress: int
    completedTopics: list[str]


class EnrollmentResponse(BaseModel):
    message: str
    course: EnrollmentOut


def _enrollment_out(enrollment: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(**enrollment.to_doc())


@router.post("/enroll", response_model=EnrollmentResponse)
async def enroll(
    payload: EnrollIn,
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
) -> EnrollmentResponse:
    try:
        enrollment = await enrollment_service.enroll(
            users, principal.user_id, payload.courseTitle
        )
    except (InvalidRequestError, AlreadyEnrolledError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None

    return EnrollmentResponse(
        message="Successfully enrolled in course",
        course=_enrollment_out(enrollment),
    )


@router.post("/progress", response_model=EnrollmentResponse)
async def update_progress(
    payload: ProgressIn,
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
) -> EnrollmentResponse:
    try:
        enrollment = await enrollment_service.record_progress(
            users,
            principal.user_id,
            payload.courseTitle,
            progress=payload.progress,
            completed_topic=payload.completedTopic,
        )
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except (UserNotFoundError, NotEnrolledError) as e:
        raise HTTPException(status_code=404, detail=str(e)) from None

    return EnrollmentResponse(
        message="Progress updated successfully",
        course=_enrollment_out(enrollment),
    )


@router.get("/progress", response_model=EnrollmentOut | list[EnrollmentOut])
async def get_progress(
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    courseTitle: str | None = None,
) -> EnrollmentOut | list[EnrollmentOut]:
    try:
        result = await enrollment_service.get_progress(
            users, principal.user_id, courseTitle
        )
    except (UserNotFoundError, NotEnrolledError) as e:
        raise HTTPException(status_code=404, detail=str(e)) from None

    if isinstance(result, list):
        return [_enrollment_out(e) for e in result]
    return _enrollment_out(result)
