"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import CourseRow
from learnhub.models.course import Course, CourseModule


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_all(self) -> list[Course]:
        stmt = select(CourseRow).order_by(CourseRow.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def get(self, course_id: UUID) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_course(row) if row is not None else None

    async def add(self, course: Course) -> None:
        row = CourseRow(
            id=course.id,
            title=course.title,
            description=course.description,
            modules=_modules_to_docs(course.modules),
            is_free=course.is_free,
            created_at=course.created_at,
            updated_at=course.updated_at,
        )
        self._session.add(row)
        await self._session.flush()

    async def replace(self, course: Course) -> Course | None:
        stmt = (
            update(CourseRow)
            .where(CourseRow.id == course.id)
            .values(
                title=course.title,
                description=course.description,
                modules=_modules_to_docs(course.modules),
                is_free=course.is_free,
                updated_at=course.updated_at,
            )
            .returning(CourseRow)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_course(row) if row is not None else None


def _modules_to_docs(modules: tuple[CourseModule, ...]) -> list[dict]:
    return [
        {"title": m.title, "content": m.content, "pdfPath": m.pdf_path, "order": m.order}
        for m in modules
    ]


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        description=row.description,
        modules=tuple(
            CourseModule(
                title=d["title"],
                content=d["content"],
                pdf_path=d["pdfPath"],
                order=int(d["order"]),
            )
            for d in row.modules or ()
        ),
        is_free=row.is_free,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
