from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnhub.models.course import Course


class CourseRepo(Protocol):
    async def list_all(self) -> list[Course]: ...
    async def get(self, course_id: UUID) -> Course | None: ...
    async def add(self, course: Course) -> None: ...
    async def replace(self, course: Course) -> Course | None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def list_all(self) -> list[Course]:
        # Newest first; insertion order breaks ties.
        courses = list(self._by_id.values())
        courses.reverse()
        return sorted(
            courses, key=lambda c: c.created_at.timestamp() if c.created_at else 0.0,
            reverse=True,
        )

    async def get(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def add(self, course: Course) -> None:
        self._by_id[course.id] = course

    async def replace(self, course: Course) -> Course | None:
        if course.id not in self._by_id:
            return None
        self._by_id[course.id] = course
        return course
