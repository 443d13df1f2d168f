"""Course catalog endpoints.

The catalog is read by anyone and written by admins.  It is not joined
with enrollments (matched by title) or with purchases (keyed by the
client-supplied catalog id).
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from learnhub.api.dependencies import get_course_repo, require_role
from learnhub.models.course import Course, CourseModule
from learnhub.models.principal import Principal
from learnhub.repos.course_repo import CourseRepo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["courses"])


class ModuleIn(BaseModel):
    title: str
    content: str = ""
    pdf_path: str = ""
    order: int = 0


class CourseIn(BaseModel):
    title: str
    description: str = ""
    modules: list[ModuleIn] = []


class CourseUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    modules: list[ModuleIn] | None = None


class ModuleOut(BaseModel):
    title: str
    content: str
    pdf_path: str
    order: int


class CourseOut(BaseModel):
    id: str
    title: str
    description: str
    modules: list[ModuleOut]
    is_free: bool
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None


def _modules(items: list[ModuleIn]) -> tuple[CourseModule, ...]:
    return tuple(
        CourseModule(
            title=m.title, content=m.content, pdf_path=m.pdf_path, order=m.order
        )
        for m in items
    )


def _course_out(course: Course) -> CourseOut:
    return CourseOut(
        id=str(course.id),
        title=course.title,
        description=course.description,
        modules=[
            ModuleOut(
                title=m.title, content=m.content, pdf_path=m.pdf_path, order=m.order
            )
            for m in course.modules
        ],
        is_free=course.is_free,
        created_at=course.created_at,
        updated_at=course.updated_at,
    )


@router.get("", response_model=list[CourseOut])
async def list_courses(
    courses: Annotated[CourseRepo, Depends(get_course_repo)],
) -> list[CourseOut]:
    return [_course_out(c) for c in await courses.list_all()]


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(
    course_id: UUID,
    courses: Annotated[CourseRepo, Depends(get_course_repo)],
) -> CourseOut:
    course = await courses.get(course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return _course_out(course)


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
    courses: Annotated[CourseRepo, Depends(get_course_repo)],
) -> CourseOut:
    if not payload.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")

    course = Course.new(
        title=payload.title.strip(),
        description=payload.description,
        modules=_modules(payload.modules),
    )
    await courses.add(course)
    logger.info("Course created  course_id=%s by user=%s", course.id, principal.user_id)
    return _course_out(course)


@router.put("/{course_id}", response_model=CourseOut)
async def update_course(
    course_id: UUID,
    payload: CourseUpdate,
    principal: Annotated[Principal, Depends(require_role("admin"))],
    courses: Annotated[CourseRepo, Depends(get_course_repo)],
) -> CourseOut:
    current = await courses.get(course_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Course not found")

    changes: dict = {"updated_at": datetime.datetime.now(datetime.UTC)}
    if payload.title is not None:
        if not payload.title.strip():
            raise HTTPException(status_code=400, detail="Title is required")
        changes["title"] = payload.title.strip()
    if payload.description is not None:
        changes["description"] = payload.description
    if payload.modules is not None:
        changes["modules"] = _modules(payload.modules)

    updated = await courses.replace(dataclasses.replace(current, **changes))
    if updated is None:
        raise HTTPException(status_code=404, detail="Course not found")

    logger.info("Course updated  course_id=%s by user=%s", course_id, principal.user_id)
    return _course_out(updated)
